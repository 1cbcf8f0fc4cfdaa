"""
StudyShift — Transformation & API Envelope Schemas
===================================================
Every response from the transform API is wrapped in one of the envelopes
below. Keys are camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from studyshift.core.config import settings
from studyshift.schemas.content import CamelModel


class TransformationType(str, Enum):
    flashcards = "flashcards"
    summary = "summary"
    mindmap = "mindmap"
    questions = "questions"
    quiz = "quiz"


# ── Stored Record ────────────────────────────────────────────────────────────

class Transformation(CamelModel):
    """One user request plus its generated output, serialised in `content`."""
    id: str
    title: str
    text: str
    type: TransformationType
    subject: str
    content_type: str
    content: str = Field(..., description="JSON-serialised generated content")
    options: Dict[str, Any] = {}
    created_at: datetime


# ── Request ──────────────────────────────────────────────────────────────────

class TransformRequest(CamelModel):
    """Request body for POST /api/transform."""
    text: str
    type: TransformationType
    subject: str
    content_type: str
    options: Dict[str, Any] = {}

    @field_validator("text")
    @classmethod
    def validate_text_length(cls, v: str) -> str:
        if len(v) < settings.MIN_TEXT_LENGTH:
            raise ValueError(
                f"Text must be at least {settings.MIN_TEXT_LENGTH} characters long"
            )
        return v


# ── Responses ────────────────────────────────────────────────────────────────

class TransformResponse(CamelModel):
    success: bool = True
    transformation: Transformation
    data: Any


class TransformationListResponse(CamelModel):
    transformations: List[Transformation]


class TransformationDetailResponse(CamelModel):
    transformation: Transformation


class SuccessResponse(CamelModel):
    success: bool = True


class ErrorResponse(CamelModel):
    """Standard error envelope."""
    success: bool = False
    error: str
    detail: Optional[str] = None
