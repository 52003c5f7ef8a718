"""
Application configuration using Pydantic Settings
Reads from environment variables and .env file
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database (read-only waste catalog)
    db_user: str = Field(default="waste_reader", alias="DB_USER")
    db_password: str = Field(default="", alias="DB_PASSWORD")
    db_name: str = Field(default="waste_catalog", alias="DB_NAME")
    db_host: str = Field(default="postgres", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")
    catalog_table: str = Field(default="waste_catalog", alias="CATALOG_TABLE")

    @property
    def database_url(self) -> str:
        """Construct database URL"""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Application
    environment: str = Field(default="production", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Matching engine limits
    max_labels: int = Field(default=8, alias="MATCH_MAX_LABELS")
    max_terms_per_label: int = Field(default=8, alias="MATCH_MAX_TERMS_PER_LABEL")
    min_term_length: int = Field(default=3, alias="MATCH_MIN_TERM_LENGTH")
    per_term_result_limit: int = Field(default=40, alias="MATCH_PER_TERM_RESULT_LIMIT")
    query_timeout_seconds: float = Field(default=5.0, alias="MATCH_QUERY_TIMEOUT_SECONDS")
    identification_timeout_seconds: float = Field(default=30.0, alias="MATCH_IDENTIFICATION_TIMEOUT_SECONDS")

    # Manual search
    browse_min_term_length: int = Field(default=2, alias="BROWSE_MIN_TERM_LENGTH")
    browse_result_limit: int = Field(default=10, alias="BROWSE_RESULT_LIMIT")

    # Recent results (in-memory only)
    recent_results_limit: int = Field(default=10, alias="RECENT_RESULTS_LIMIT")

    # Vision labeling collaborator
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    vision_model: str = Field(default="claude-sonnet-4-5", alias="VISION_MODEL")
    vision_min_score: float = Field(default=0.3, alias="VISION_MIN_SCORE")
    vision_max_labels: int = Field(default=10, alias="VISION_MAX_LABELS")

    # Monitoring
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment"""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @validator("catalog_table")
    def validate_catalog_table(cls, v):
        """Table name is interpolated into SQL, so keep it to a plain identifier"""
        if not v.replace("_", "").replace(".", "").isalnum():
            raise ValueError("CATALOG_TABLE must be a plain (optionally schema-qualified) identifier")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
