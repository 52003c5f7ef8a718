"""
Data schemas for the waste matching module
"""
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

NOT_FOUND_NAME = "Not found in catalog"


def clamp_confidence(value: Any) -> float:
    """Clamp a collaborator-supplied confidence into [0, 1]; junk becomes 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


class CatalogField(str, Enum):
    """Catalog columns that accept substring lookups"""
    NAME = "name"
    SYNONYMS = "synonyms"
    VARIATION = "variation"
    MATERIAL = "material"


class CategorizationSource(str, Enum):
    """Reason the final home/recycling categories were chosen"""
    DATABASE = "database"                   # Catalog categories used as-is
    DATABASE_PRECISE = "database-precise"   # Catalog material carries an explicit sub-type
    AI_SPECIFIC = "ai-specific"             # AI sub-type refines a generic catalog material
    AI_FALLBACK = "ai-fallback"             # Catalog had no categories, AI material used
    AI_HAZARDOUS = "ai-hazardous"           # AI flagged a hazard the catalog didn't know about
    FALLBACK = "fallback"                   # Nothing usable, generic residual waste


class CandidateLabel(BaseModel):
    """
    One AI-produced guess at the object's identity.

    Produced by the vision collaborator. Confidence is clamped to [0, 1].
    """
    description: str = Field(..., description="What the vision model thinks it sees")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    material: Optional[str] = Field(None, description="Optional material hint (e.g. 'soft plastic')")

    class Config:
        frozen = True

    @validator("confidence", pre=True)
    def clamp(cls, v):
        return clamp_confidence(v)

    @validator("description")
    def strip_description(cls, v):
        return v.strip()

    @validator("material")
    def blank_material_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @classmethod
    def from_vision(cls, data: Dict[str, Any]) -> "CandidateLabel":
        """Build a label from a raw vision payload ({description, score|confidence, material?})."""
        confidence = data.get("confidence")
        if confidence is None:
            confidence = data.get("score", 0.0)
        return cls(
            description=str(data.get("description") or ""),
            confidence=confidence,
            material=data.get("material"),
        )


class CatalogEntry(BaseModel):
    """
    One row of the waste-sorting reference catalog.

    Read-only. Several entries may share a name and differ by material or
    condition (variants of the same real-world object).
    """
    id: str
    name: str
    synonyms: Optional[str] = None
    variation: Optional[str] = None
    material: Optional[str] = None
    condition: Optional[str] = None
    home_category: str = ""
    recycling_category: str = ""

    class Config:
        frozen = True

    @validator("id", pre=True)
    def id_as_string(cls, v):
        return str(v)

    @validator("home_category", "recycling_category", pre=True)
    def none_as_empty(cls, v):
        return v or ""

    def field_value(self, field: CatalogField) -> Optional[str]:
        return getattr(self, field.value)


class SearchHit(BaseModel):
    """A catalog entry plus the field and term that found it"""
    entry: CatalogEntry
    match_field: CatalogField
    match_term: str

    class Config:
        frozen = True


class ScoredCandidate(BaseModel):
    """One label together with its best catalog entry and comparable score"""
    label: CandidateLabel
    entry: CatalogEntry
    combined_score: float
    db_match_quality: float
    label_index: int = 0


class CategorizationResult(BaseModel):
    """Final home/recycling decision and why it was made"""
    home_category: str
    recycling_category: str
    source: CategorizationSource

    class Config:
        frozen = True


class WasteIdentification(BaseModel):
    """
    Final output of one identification.

    The not-found sentinel has name NOT_FOUND_NAME, empty categories and
    confidence 0.
    """
    name: str
    home_category: str
    recycling_category: str
    description: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    decision_log: List[str] = Field(default_factory=list)
    categorization_source: Optional[CategorizationSource] = None
    matched_label: Optional[str] = None
    identified_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Bag",
                "home_category": "Plastic",
                "recycling_category": "Recycling center - soft plastic",
                "description": "Identified using AI analysis. Variation: Carrier bag. Sort as indicated "
                               "or contact your local recycling center for specific guidance.",
                "confidence": 0.92,
                "decision_log": [
                    "input: Received 2 labels, processing 2",
                    "selection: Winner: 'plastic bag' -> 'Bag' (score 2.208)",
                ],
                "categorization_source": "database-precise",
                "matched_label": "plastic bag",
            }
        }

    @property
    def is_not_found(self) -> bool:
        return self.name == NOT_FOUND_NAME


def not_found(decision_log: Optional[List[str]] = None) -> WasteIdentification:
    """The designated 'no match' result, returned instead of raising."""
    return WasteIdentification(
        name=NOT_FOUND_NAME,
        home_category="",
        recycling_category="",
        description="The item could not be identified in the catalog. Sort it as residual waste "
                    "or contact your local recycling center for guidance.",
        confidence=0.0,
        decision_log=list(decision_log or []),
    )
