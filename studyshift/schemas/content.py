"""
StudyShift — Generated Content Schemas
=======================================
Typed shapes for every transformation output.
Attributes are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serialises to camelCase and accepts either spelling."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Flashcards / Questions ───────────────────────────────────────────────────

class Flashcard(CamelModel):
    id: str
    question: str
    answer: str


class Question(CamelModel):
    """A practice question with its model answer (ungraded)."""
    id: str
    question: str
    answer: str


# ── Summary ──────────────────────────────────────────────────────────────────

class Summary(CamelModel):
    points: List[str]


# ── Mind Map ─────────────────────────────────────────────────────────────────

class Position(CamelModel):
    x: float
    y: float


class MindMapNode(CamelModel):
    """
    A node on the mind-map canvas.
    Exactly one node is expected to have parent_id=None (the root);
    this is not validated.
    """
    id: str
    text: str
    parent_id: Optional[str] = None
    position: Position


class MindMapEdge(CamelModel):
    id: str
    source: str
    target: str


class MindMap(CamelModel):
    nodes: List[MindMapNode]
    edges: List[MindMapEdge]


# ── Quiz ─────────────────────────────────────────────────────────────────────

class QuizQuestion(CamelModel):
    """A multiple-choice question with exactly 4 answers."""
    id: str
    question: str
    answers: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer_index: int = Field(..., ge=0, le=3)


class Quiz(CamelModel):
    questions: List[QuizQuestion]
