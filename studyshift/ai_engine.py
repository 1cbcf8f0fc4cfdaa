"""
StudyShift — AI Engine
=======================
Turns raw study text into structured study material:
  1. flashcards   2. summary   3. mind map   4. practice questions   5. quiz

Every transformation type follows the same protocol:
  prompt → one model call → JSON extraction → shape coercion
  → on any failure, a deterministic fallback heuristic
  → if even that fails, a single "Error generating …" sentinel entity.

Generation never raises; callers detect degraded output with is_degraded().
"""

import json
import re
import uuid
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from studyshift.core.config import settings
from studyshift.schemas.content import (
    Flashcard,
    MindMap,
    MindMapEdge,
    MindMapNode,
    Position,
    Question,
    Quiz,
    QuizQuestion,
    Summary,
)
from studyshift.schemas.transformation import TransformationType
from studyshift.services import fallback_service as fallbacks
from studyshift.services.llm_service import call_model

logger = logging.getLogger(__name__)

GeneratedContent = Union[List[Flashcard], Summary, MindMap, List[Question], Quiz]

ERROR_PREFIX = "Error generating"
RETRY_HINT = "Please try again with different text or options."

ERROR_TEXTS = {
    TransformationType.flashcards: f"{ERROR_PREFIX} flashcards",
    TransformationType.summary: f"{ERROR_PREFIX} summary. {RETRY_HINT}",
    TransformationType.mindmap: f"{ERROR_PREFIX} mind map",
    TransformationType.questions: f"{ERROR_PREFIX} questions",
    TransformationType.quiz: f"{ERROR_PREFIX} quiz",
}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# JSON RECOVERY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_CLOSERS = {"[": "]", "{": "}"}


def extract_json_from_text(raw_text: str) -> Any:
    """
    Best-effort JSON extractor for free-text model output:
    1. Strip markdown code fences (```json ... ```)
    2. Slice from the first [ or { to the last matching ] or }
    3. Parse with json.loads
    Raises ValueError when no JSON can be recovered.
    """
    if not raw_text or not raw_text.strip():
        raise ValueError("Empty AI response received")

    cleaned = re.sub(r"```(?:json)?\n?|\n?```", "", raw_text).strip()

    openers = [i for i in (cleaned.find("["), cleaned.find("{")) if i != -1]
    if not openers:
        raise ValueError("No valid JSON found in response")

    start = min(openers)
    end = cleaned.rfind(_CLOSERS[cleaned[start]])
    if end < start:
        raise ValueError("No valid JSON found in response")

    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed. Raw text (first 500 chars): {raw_text[:500]}")
        raise ValueError(f"AI returned invalid JSON: {e}")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PROMPTS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def requested_count(options: Dict[str, Any], key: str) -> int:
    """Read a positive item count from options, falling back to the default."""
    try:
        count = int(options.get(key) or settings.DEFAULT_ITEM_COUNT)
    except (TypeError, ValueError):
        return settings.DEFAULT_ITEM_COUNT
    return max(count, 1)


def _flashcards_prompt(text: str, options: Dict[str, Any]) -> str:
    return (
        f"Generate {requested_count(options, 'numberOfCards')} flashcards from this text. "
        'Format as JSON array with objects containing "question" and "answer" fields.\n\n'
        f"Text: {text}\n\n"
        "Example format:\n"
        "[\n"
        "  {\n"
        '    "question": "What is photosynthesis?",\n'
        '    "answer": "The process by which plants convert light energy into chemical energy"\n'
        "  }\n"
        "]"
    )


def _summary_prompt(text: str, options: Dict[str, Any]) -> str:
    return (
        "Summarize the following text into key points. "
        'Format as JSON with a "points" array containing bullet points.\n\n'
        f"Text: {text}\n\n"
        "Example format:\n"
        "{\n"
        '  "points": [\n'
        '    "First key point about the text",\n'
        '    "Second key point about the text",\n'
        '    "Third key point about the text"\n'
        "  ]\n"
        "}"
    )


def _mindmap_prompt(text: str, options: Dict[str, Any]) -> str:
    layout = options.get("layout")
    layout_hint = f" Arrange the nodes in a {layout} layout." if layout else ""
    return (
        'Create a mind map from this text. Format as JSON with "nodes" array '
        '(each with "id", "text", "parentId", "position" with x/y coordinates) '
        f'and "edges" array (each with "id", "source", "target").{layout_hint}\n\n'
        f"Text: {text}\n\n"
        "Example format:\n"
        "{\n"
        '  "nodes": [\n'
        '    {"id": "root", "text": "Main Topic", "parentId": null, "position": {"x": 0, "y": 0}},\n'
        '    {"id": "subtopic1", "text": "Subtopic 1", "parentId": "root", "position": {"x": -100, "y": 100}}\n'
        "  ],\n"
        '  "edges": [\n'
        '    {"id": "edge1", "source": "root", "target": "subtopic1"}\n'
        "  ]\n"
        "}"
    )


def _questions_prompt(text: str, options: Dict[str, Any]) -> str:
    return (
        f"Generate {requested_count(options, 'numberOfQuestions')} practice questions from this text. "
        'Format as JSON array with objects containing "question" and "answer" fields.\n\n'
        f"Text: {text}\n\n"
        "Example format:\n"
        "[\n"
        "  {\n"
        '    "question": "What is the capital of France?",\n'
        '    "answer": "Paris"\n'
        "  }\n"
        "]"
    )


def _quiz_prompt(text: str, options: Dict[str, Any]) -> str:
    return (
        f"Create a quiz with {requested_count(options, 'numberOfQuestions')} multiple-choice "
        'questions from this text. Format as JSON with a "questions" array. Each question '
        'object should have "question", "answers" (array of 4 choices), and '
        '"correctAnswerIndex" (index 0-3 of correct answer).\n\n'
        f"Text: {text}\n\n"
        "Example format:\n"
        "{\n"
        '  "questions": [\n'
        "    {\n"
        '      "question": "What is the capital of France?",\n'
        '      "answers": ["London", "Paris", "Berlin", "Madrid"],\n'
        '      "correctAnswerIndex": 1\n'
        "    }\n"
        "  ]\n"
        "}"
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SHAPE COERCION (model path)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Missing fields get placeholder text; a wrong top-level shape raises
# ValueError so the caller switches to the fallback heuristic.

def _new_id() -> str:
    return str(uuid.uuid4())


def _as_dict(item: Any) -> Dict[str, Any]:
    return item if isinstance(item, dict) else {}


def _text_or(value: Any, placeholder: str) -> str:
    return str(value) if value not in (None, "") else placeholder


def _optional_text(value: Any) -> Optional[str]:
    """Stringify ids such as 1 or 2.0; None stays None."""
    return None if value is None else str(value)


def _require_list(parsed: Any, what: str) -> List[Any]:
    if not isinstance(parsed, list) or not parsed:
        raise ValueError(f"{what}: response is not a non-empty array")
    return parsed


def _require_object(parsed: Any, what: str) -> Dict[str, Any]:
    if not isinstance(parsed, dict):
        raise ValueError(f"{what}: response is not a JSON object")
    return parsed


def _coerce_flashcards(parsed: Any, options: Dict[str, Any]) -> List[Flashcard]:
    items = _require_list(parsed, "flashcards")[:requested_count(options, "numberOfCards")]
    return [
        Flashcard(
            id=_new_id(),
            question=_text_or(_as_dict(card).get("question"), "Question not generated"),
            answer=_text_or(_as_dict(card).get("answer"), "Answer not generated"),
        )
        for card in items
    ]


def _coerce_questions(parsed: Any, options: Dict[str, Any]) -> List[Question]:
    items = _require_list(parsed, "questions")[:requested_count(options, "numberOfQuestions")]
    return [
        Question(
            id=_new_id(),
            question=_text_or(_as_dict(item).get("question"), "Question not generated"),
            answer=_text_or(_as_dict(item).get("answer"), "Answer not generated"),
        )
        for item in items
    ]


def _coerce_summary(parsed: Any, options: Dict[str, Any]) -> Summary:
    points = _require_object(parsed, "summary").get("points")
    if not isinstance(points, list) or not points:
        return Summary(points=["Summary not generated correctly"])
    return Summary(points=[str(p) for p in points])


def _coerce_mindmap(parsed: Any, options: Dict[str, Any]) -> MindMap:
    data = _require_object(parsed, "mindmap")
    raw_nodes = _require_list(data.get("nodes"), "mindmap nodes")
    raw_edges = data.get("edges") if isinstance(data.get("edges"), list) else []

    nodes = []
    for index, raw in enumerate(raw_nodes):
        node = _as_dict(raw)
        position = node.get("position") or {"x": 100 * (index % 5), "y": 100 * (index // 5)}
        nodes.append(MindMapNode(
            id=_text_or(node.get("id"), f"node-{index}"),
            text=_text_or(node.get("text"), f"Node {index}"),
            parent_id=_optional_text(node.get("parentId")),
            position=Position(**position),
        ))

    # Endpoints are not checked against node ids.
    edges = [
        MindMapEdge(
            id=_text_or(_as_dict(raw).get("id"), f"edge-{index}"),
            source=_optional_text(_as_dict(raw).get("source")),
            target=_optional_text(_as_dict(raw).get("target")),
        )
        for index, raw in enumerate(raw_edges)
    ]
    return MindMap(nodes=nodes, edges=edges)


def _coerce_answers(answers: Any) -> List[str]:
    if not isinstance(answers, list):
        return [f"Option {k}" for k in range(1, 5)]
    padded = [str(a) for a in answers[:4]]
    padded += [f"Option {k}" for k in range(len(padded) + 1, 5)]
    return padded


def _coerce_quiz(parsed: Any, options: Dict[str, Any]) -> Quiz:
    data = _require_object(parsed, "quiz")
    items = _require_list(data.get("questions"), "quiz questions")
    items = items[:requested_count(options, "numberOfQuestions")]

    questions = []
    for raw in items:
        item = _as_dict(raw)
        index = item.get("correctAnswerIndex")
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= 3:
            index = 0
        questions.append(QuizQuestion(
            id=_new_id(),
            question=_text_or(item.get("question"), "Question not generated"),
            answers=_coerce_answers(item.get("answers")),
            correct_answer_index=index,
        ))
    return Quiz(questions=questions)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ERROR SENTINELS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _flashcards_error() -> List[Flashcard]:
    return [Flashcard(id=_new_id(), question=ERROR_TEXTS[TransformationType.flashcards], answer=RETRY_HINT)]


def _summary_error() -> Summary:
    return Summary(points=[ERROR_TEXTS[TransformationType.summary]])


def _mindmap_error() -> MindMap:
    return MindMap(
        nodes=[
            MindMapNode(id="root", text=ERROR_TEXTS[TransformationType.mindmap], parent_id=None, position=Position(x=0, y=0)),
            MindMapNode(id="error", text="Failed to generate mind map", parent_id="root",
                        position=Position(x=0, y=100)),
        ],
        edges=[MindMapEdge(id="edge1", source="root", target="error")],
    )


def _questions_error() -> List[Question]:
    return [Question(id=_new_id(), question=ERROR_TEXTS[TransformationType.questions], answer=RETRY_HINT)]


def _quiz_error() -> Quiz:
    return Quiz(questions=[QuizQuestion(
        id=_new_id(),
        question=ERROR_TEXTS[TransformationType.quiz],
        answers=[f"Option {k}" for k in range(1, 5)],
        correct_answer_index=0,
    )])


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# GENERATOR TABLE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class ContentGenerator:
    """Everything that differs between transformation types."""
    tag: str
    build_prompt: Callable[[str, Dict[str, Any]], str]
    coerce: Callable[[Any, Dict[str, Any]], GeneratedContent]
    fallback: Callable[[str, Dict[str, Any]], GeneratedContent]
    on_error: Callable[[], GeneratedContent]
    long_output: bool = False

    @property
    def max_new_tokens(self) -> int:
        return settings.MINDMAP_MAX_NEW_TOKENS if self.long_output else settings.MAX_NEW_TOKENS


GENERATORS: Dict[TransformationType, ContentGenerator] = {
    TransformationType.flashcards: ContentGenerator(
        tag="FLASHCARDS",
        build_prompt=_flashcards_prompt,
        coerce=_coerce_flashcards,
        fallback=fallbacks.fallback_flashcards,
        on_error=_flashcards_error,
    ),
    TransformationType.summary: ContentGenerator(
        tag="SUMMARY",
        build_prompt=_summary_prompt,
        coerce=_coerce_summary,
        fallback=fallbacks.fallback_summary,
        on_error=_summary_error,
    ),
    TransformationType.mindmap: ContentGenerator(
        tag="MINDMAP",
        build_prompt=_mindmap_prompt,
        coerce=_coerce_mindmap,
        fallback=fallbacks.fallback_mindmap,
        on_error=_mindmap_error,
        long_output=True,
    ),
    TransformationType.questions: ContentGenerator(
        tag="QUESTIONS",
        build_prompt=_questions_prompt,
        coerce=_coerce_questions,
        fallback=fallbacks.fallback_questions,
        on_error=_questions_error,
    ),
    TransformationType.quiz: ContentGenerator(
        tag="QUIZ",
        build_prompt=_quiz_prompt,
        coerce=_coerce_quiz,
        fallback=fallbacks.fallback_quiz,
        on_error=_quiz_error,
    ),
}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SINGLE ENTRY POINT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def generate_content(
    kind: TransformationType,
    text: str,
    options: Optional[Dict[str, Any]] = None,
) -> GeneratedContent:
    """
    Run the generate-then-fallback protocol for one transformation type.
    Never raises: the worst case is the type's "Error generating …" sentinel.
    """
    generator = GENERATORS[TransformationType(kind)]
    options = options or {}
    logger.info(f"[{generator.tag}] Starting generation...")

    try:
        try:
            raw = await call_model(generator.build_prompt(text, options), generator.max_new_tokens)
            result = generator.coerce(extract_json_from_text(raw), options)
            logger.info(f"[{generator.tag}] ✓ Generated from model output")
            return result
        except Exception as e:
            logger.warning(f"[{generator.tag}] Model path failed: {str(e)[:200]}. Using fallback heuristic...")
            return generator.fallback(text, options)
    except Exception as e:
        logger.error(f"[{generator.tag}] Fallback failed: {e}", exc_info=True)
        return generator.on_error()


async def generate_flashcards(text: str, options: Optional[Dict[str, Any]] = None) -> List[Flashcard]:
    return await generate_content(TransformationType.flashcards, text, options)


async def generate_summary(text: str, options: Optional[Dict[str, Any]] = None) -> Summary:
    return await generate_content(TransformationType.summary, text, options)


async def generate_mindmap(text: str, options: Optional[Dict[str, Any]] = None) -> MindMap:
    return await generate_content(TransformationType.mindmap, text, options)


async def generate_questions(text: str, options: Optional[Dict[str, Any]] = None) -> List[Question]:
    return await generate_content(TransformationType.questions, text, options)


async def generate_quiz(text: str, options: Optional[Dict[str, Any]] = None) -> Quiz:
    return await generate_content(TransformationType.quiz, text, options)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SERIALISATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def serialize_content(content: GeneratedContent) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """JSON-ready camelCase form of generated content."""
    if isinstance(content, BaseModel):
        return content.model_dump(mode="json", by_alias=True)
    return [item.model_dump(mode="json", by_alias=True) for item in content]


_SENTINEL_SLOTS = (
    ("points", None, TransformationType.summary),
    ("nodes", "text", TransformationType.mindmap),
    ("questions", "question", TransformationType.quiz),
)


def is_degraded(content: Any) -> bool:
    """True when serialised content is its type's "Error generating" sentinel."""
    if isinstance(content, list):
        first = content[0] if content else None
        return isinstance(first, dict) and first.get("question") in (
            ERROR_TEXTS[TransformationType.flashcards],
            ERROR_TEXTS[TransformationType.questions],
        )
    if not isinstance(content, dict):
        return False

    for key, field, kind in _SENTINEL_SLOTS:
        items = content.get(key)
        if isinstance(items, list) and items:
            head = items[0]
            if field is not None:
                head = head.get(field) if isinstance(head, dict) else None
            return head == ERROR_TEXTS[kind]
    return False
