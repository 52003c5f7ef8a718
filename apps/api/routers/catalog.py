"""
Catalog API Router
Manual catalog search for users who type a name instead of taking a photo
"""
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from apps.api.dependencies import get_identification_service
from packages.domain.waste_matching.identification_service import WasteIdentificationService
from packages.domain.waste_matching.schemas import CatalogEntry, WasteIdentification

logger = structlog.get_logger()
router = APIRouter()


@router.get("/search", response_model=List[CatalogEntry])
async def search_catalog(
    q: str = Query(..., description="Free-text search term"),
    service: WasteIdentificationService = Depends(get_identification_service),
):
    """
    Search the catalog by name, synonyms, variation and material

    Terms shorter than 2 characters return an empty list
    """
    return await service.browse(q)


@router.post("/select", response_model=WasteIdentification)
async def select_entry(
    entry: CatalogEntry,
    service: WasteIdentificationService = Depends(get_identification_service),
):
    """Turn a search result the user picked into an identification"""
    if not entry.name.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Entry has no name")

    logger.info("catalog_entry_selected", entry_id=entry.id, name=entry.name)
    return service.identification_from_entry(entry)
