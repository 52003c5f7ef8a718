"""
Identification API Router
Handles label and image identification plus the recent-results list
"""
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from prometheus_client import Counter
from pydantic import BaseModel, Field

from apps.api.dependencies import get_identification_service, get_vision_labeler
from packages.domain.waste_matching.identification_service import WasteIdentificationService
from packages.domain.waste_matching.schemas import WasteIdentification, not_found
from packages.domain.waste_matching.vision_labeler import VisionLabeler, VisionUnavailableError

logger = structlog.get_logger()
router = APIRouter()

IDENTIFICATIONS = Counter(
    "waste_identifications_total",
    "Identifications by outcome",
    ["outcome"],
)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]


class LabelIn(BaseModel):
    """One label as sent by a client that already ran vision labeling"""
    description: str
    confidence: float = Field(default=0.0, description="Clamped to 0-1")
    material: Optional[str] = None


class IdentifyRequest(BaseModel):
    labels: List[LabelIn] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "labels": [
                    {"description": "plastic bag", "confidence": 0.92, "material": "soft plastic"},
                    {"description": "shopping", "confidence": 0.71},
                ]
            }
        }


def _count(result: WasteIdentification) -> WasteIdentification:
    IDENTIFICATIONS.labels(outcome="not_found" if result.is_not_found else "identified").inc()
    return result


@router.post("/identify", response_model=WasteIdentification)
async def identify_labels(
    request: IdentifyRequest,
    service: WasteIdentificationService = Depends(get_identification_service),
):
    """
    Identify a waste item from vision labels

    - **labels**: candidate labels in priority order (first 8 are used)

    Always returns a result; "Not found in catalog" when nothing matched
    """
    logger.info("identify_request", labels=len(request.labels))
    result = await service.identify([label.model_dump() for label in request.labels])
    return _count(result)


@router.post("/identify/image", response_model=WasteIdentification)
async def identify_image(
    file: UploadFile = File(...),
    service: WasteIdentificationService = Depends(get_identification_service),
    labeler: VisionLabeler = Depends(get_vision_labeler),
):
    """
    Identify a waste item from a photo

    - **file**: JPEG, PNG or WebP image

    The image is labeled by the vision collaborator, then matched like /identify
    """
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"File type {file.content_type} not supported. Allowed: {ALLOWED_IMAGE_TYPES}"
        )

    content = await file.read()
    logger.info("identify_image_request", filename=file.filename, size=len(content))

    try:
        labels = await labeler.label_image(content, media_type=file.content_type)
    except VisionUnavailableError as e:
        logger.error("vision_unavailable", error=str(e))
        result = not_found([f"input: Vision labeling unavailable: {e}"])
        service.recent.add(result)
        return _count(result)

    result = await service.identify(labels)
    return _count(result)


@router.get("/recent", response_model=List[WasteIdentification])
async def list_recent(
    limit: int = Query(10, ge=1, description="Maximum number of results"),
    service: WasteIdentificationService = Depends(get_identification_service),
):
    """Most recent identifications, newest first (in-memory only)"""
    return service.recent.list(limit)


@router.delete("/recent", status_code=status.HTTP_204_NO_CONTENT)
async def clear_recent(
    service: WasteIdentificationService = Depends(get_identification_service),
):
    """Forget all recent identifications"""
    service.recent.clear()
    logger.info("recent_results_cleared")
