"""
StudyShift — Fallback Heuristics
=================================
Deterministic, model-free generators used whenever the AI call or the
parsing of its output fails. Same text + same options → same output,
ids included.
"""

import math
import re
import uuid
from typing import Any, Dict, List

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

FALLBACK_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "studyshift/fallback")

MAX_FALLBACK_ITEMS = 5
MINDMAP_RADIUS = 150

SUMMARY_FILLER = "The text covers important concepts and information related to the subject."


def stable_id(*parts: Any) -> str:
    """uuid5 over the given parts, so repeated fallbacks yield identical ids."""
    return str(uuid.uuid5(FALLBACK_NAMESPACE, "|".join(str(p) for p in parts)))


def split_sentences(text: str) -> List[str]:
    """Split on sentence punctuation and drop blank pieces (pieces are not stripped)."""
    return [s for s in re.split(r"[.!?]", text) if s.strip()]


def _first_words(sentence: str, count: int) -> str:
    return " ".join(sentence.strip().split(" ")[:count])


def _subject(options: Dict[str, Any], default: str) -> str:
    return options.get("subject") or default


# ── Flashcards ───────────────────────────────────────────────────────────────

def fallback_flashcards(text: str, options: Dict[str, Any]) -> List[Flashcard]:
    lines = text.split(".")
    flashcards: List[Flashcard] = []

    for i in range(min(MAX_FALLBACK_ITEMS, len(lines))):
        line = lines[i].strip()
        if len(line) > 10:
            flashcards.append(Flashcard(
                id=stable_id("flashcard", i, line),
                question=f"What is important about {_first_words(line, 3)}...?",
                answer=line,
            ))

    if flashcards:
        return flashcards

    subject = _subject(options, "the subject")
    generic = [
        (f"What is {subject}?",
         "The study material provided discusses this topic in detail."),
        (f"Name a key concept in {subject}.",
         "Key concepts include the main ideas presented in the study material."),
        (f"How would you define {subject}?",
         "It can be defined based on the content provided in your study material."),
        (f"What's an example of {subject} in practice?",
         "The study material may provide examples of practical applications."),
        (f"Why is {subject} important?",
         "Its importance is related to the context described in your study material."),
    ]
    return [
        Flashcard(id=stable_id("flashcard-generic", i, subject), question=q, answer=a)
        for i, (q, a) in enumerate(generic)
    ]


# ── Summary ──────────────────────────────────────────────────────────────────

def fallback_summary(text: str, options: Dict[str, Any]) -> Summary:
    """First, middle and last sentence; one filler point when fewer than 3."""
    sentences = split_sentences(text)
    n = len(sentences)
    points: List[str] = []

    if n > 0:
        points.append(sentences[0].strip())
    if n >= 3:
        points.append(sentences[n // 2].strip())
    if n >= 2:
        points.append(sentences[-1].strip())

    if len(points) < 3:
        points.append(SUMMARY_FILLER)

    return Summary(points=points)


# ── Mind Map ─────────────────────────────────────────────────────────────────

def fallback_mindmap(text: str, options: Dict[str, Any]) -> MindMap:
    """Root labelled with the subject, first sentences arranged on a circle."""
    sentences = split_sentences(text)[:MAX_FALLBACK_ITEMS]
    count = len(sentences)

    nodes = [MindMapNode(
        id="root",
        text=_subject(options, "Main Topic"),
        parent_id=None,
        position=Position(x=0, y=0),
    )]
    edges: List[MindMapEdge] = []

    for index, sentence in enumerate(sentences):
        angle = 2 * math.pi * index / count
        node_id = f"node-{index}"
        nodes.append(MindMapNode(
            id=node_id,
            text=_first_words(sentence, 3) + "...",
            parent_id="root",
            position=Position(
                x=MINDMAP_RADIUS * math.cos(angle),
                y=MINDMAP_RADIUS * math.sin(angle),
            ),
        ))
        edges.append(MindMapEdge(id=f"edge-{index}", source="root", target=node_id))

    return MindMap(nodes=nodes, edges=edges)


# ── Questions ────────────────────────────────────────────────────────────────

def fallback_questions(text: str, options: Dict[str, Any]) -> List[Question]:
    sentences = split_sentences(text)[:MAX_FALLBACK_ITEMS]
    questions: List[Question] = []

    for i, sentence in enumerate(sentences):
        sentence = sentence.strip()
        if len(sentence) > 15:
            questions.append(Question(
                id=stable_id("question", i, sentence),
                question=f'What does it mean that "{_first_words(sentence, 8)}..."?',
                answer=sentence,
            ))

    subject = _subject(options, "the topic")
    while len(questions) < MAX_FALLBACK_ITEMS:
        questions.append(Question(
            id=stable_id("question-generic", len(questions), subject),
            question=f"What is an important aspect of {subject}?",
            answer="The text discusses various aspects of this topic.",
        ))

    return questions


# ── Quiz ─────────────────────────────────────────────────────────────────────

def fallback_quiz(text: str, options: Dict[str, Any]) -> Quiz:
    """Multiple choice from sentences; the correct answer is always index 0."""
    sentences = split_sentences(text)[:MAX_FALLBACK_ITEMS]
    words = [w for w in text.split(" ") if len(w) > 5]
    subject = _subject(options, "the subject")
    questions: List[QuizQuestion] = []

    for i, sentence in enumerate(sentences):
        sentence = sentence.strip()
        if len(sentence) <= 15:
            continue
        jab_word = words[i % len(words)] if words else "this topic"
        questions.append(QuizQuestion(
            id=stable_id("quiz", i, sentence),
            question=f"Which statement is true about {subject}?",
            answers=[
                sentence,
                f"The opposite of {sentence}",
                f"{subject} is unrelated to {jab_word}",
                "None of the above",
            ],
            correct_answer_index=0,
        ))

    while len(questions) < MAX_FALLBACK_ITEMS:
        questions.append(QuizQuestion(
            id=stable_id("quiz-generic", len(questions), subject),
            question=f"What best describes {subject}?",
            answers=[
                "It is as described in the text",
                "It is unrelated to the text",
                "It contradicts the text",
                "None of the above",
            ],
            correct_answer_index=0,
        ))

    return Quiz(questions=questions)
