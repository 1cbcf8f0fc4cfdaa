import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from studyshift.ai_engine import generate_content, is_degraded, serialize_content
from studyshift.schemas.transformation import (
    ErrorResponse,
    SuccessResponse,
    Transformation,
    TransformationDetailResponse,
    TransformationListResponse,
    TransformRequest,
    TransformResponse,
)
from studyshift.services.storage_service import storage

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = ErrorResponse(error="Transformation not found")


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content=NOT_FOUND.model_dump(by_alias=True))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. TRANSFORM
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/transform", response_model=TransformResponse)
async def transform_text(request: TransformRequest):
    """Generate study material from text and store it as a Transformation."""
    options = {"subject": request.subject, **request.options}

    result = await generate_content(request.type, request.text, options)
    data = serialize_content(result)
    if is_degraded(data):
        logger.warning(f"[TRANSFORM] {request.type.value} returned error sentinel content")

    transformation = storage.create_transformation(Transformation(
        id=storage.next_id(),
        title=f"{request.subject} {request.type.value}",
        text=request.text,
        type=request.type,
        subject=request.subject,
        content_type=request.content_type,
        content=json.dumps(data),
        options=request.options,
        created_at=datetime.now(timezone.utc),
    ))

    logger.info(f"[TRANSFORM] ✓ {transformation.id} — {transformation.title}")
    return TransformResponse(transformation=transformation, data=data)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. HISTORY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.get("/transformations", response_model=TransformationListResponse)
async def list_transformations():
    """All stored transformations, newest first."""
    return TransformationListResponse(transformations=storage.get_transformations())


@router.get(
    "/transformations/{transformation_id}",
    response_model=TransformationDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_transformation(transformation_id: str):
    transformation = storage.get_transformation(transformation_id)
    if transformation is None:
        return _not_found()
    return TransformationDetailResponse(transformation=transformation)


@router.delete(
    "/transformations/{transformation_id}",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_transformation(transformation_id: str):
    if not storage.delete_transformation(transformation_id):
        return _not_found()
    return SuccessResponse()
