"""
Shared service instances for the API

Routers get the identification service and the vision labeler through
FastAPI dependencies so tests can override them with
app.dependency_overrides.
"""
from functools import lru_cache

from packages.common.config import get_settings
from packages.common.database import sessionmanager
from packages.domain.waste_matching.catalog_store import SqlCatalogStore
from packages.domain.waste_matching.identification_service import WasteIdentificationService
from packages.domain.waste_matching.vision_labeler import VisionLabeler


@lru_cache()
def get_identification_service() -> WasteIdentificationService:
    """Process-wide service; its recent-results list lives as long as the process."""
    settings = get_settings()
    store = SqlCatalogStore(sessionmanager, table=settings.catalog_table)
    return WasteIdentificationService(store, settings=settings)


@lru_cache()
def get_vision_labeler() -> VisionLabeler:
    return VisionLabeler(get_settings())
