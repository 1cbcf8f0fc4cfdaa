import dataclasses
import json

import pytest

from studyshift import ai_engine
from studyshift.ai_engine import (
    generate_content,
    generate_flashcards,
    generate_mindmap,
    generate_questions,
    generate_quiz,
    generate_summary,
    is_degraded,
    serialize_content,
)
from studyshift.core.config import settings
from studyshift.schemas.content import Flashcard, MindMap, Question, Quiz, Summary
from studyshift.schemas.transformation import TransformationType
from studyshift.services import fallback_service as fallbacks


# ── Model path ───────────────────────────────────────────────────────────────

def test_flashcards_from_fenced_model_output(fake_model, run, sample_text):
    fake_model.reply = (
        "```json\n"
        '[{"question": "What is photosynthesis?", "answer": "Turning light into energy"},'
        ' {"question": "Where does it happen?"}]\n'
        "```"
    )

    cards = run(generate_flashcards(sample_text, {"numberOfCards": 2}))

    assert [c.question for c in cards] == ["What is photosynthesis?", "Where does it happen?"]
    assert cards[1].answer == "Answer not generated"
    assert len({c.id for c in cards}) == 2


def test_prompt_embeds_text_count_and_example(fake_model, run, sample_text):
    fake_model.reply = '[{"question": "Q", "answer": "A"}]'

    run(generate_flashcards(sample_text, {"numberOfCards": 7}))

    prompt, max_new_tokens = fake_model.calls[0]
    assert "Generate 7 flashcards" in prompt
    assert sample_text in prompt
    assert "Example format" in prompt
    assert max_new_tokens == settings.MAX_NEW_TOKENS


def test_flashcards_truncated_to_requested_count(fake_model, run, sample_text):
    fake_model.reply = json.dumps([{"question": f"Q{i}", "answer": f"A{i}"} for i in range(8)])

    cards = run(generate_flashcards(sample_text, {"numberOfCards": 3}))

    assert [c.question for c in cards] == ["Q0", "Q1", "Q2"]


def test_questions_non_dict_items_get_placeholders(fake_model, run, sample_text):
    fake_model.reply = '["just a string", {"question": "Why?", "answer": "Because"}]'

    questions = run(generate_questions(sample_text))

    assert questions[0].question == "Question not generated"
    assert questions[0].answer == "Answer not generated"
    assert questions[1].answer == "Because"


def test_summary_from_model(fake_model, run, sample_text):
    fake_model.reply = 'Here you go: {"points": ["Plants use light", "Oxygen is released"]}'

    summary = run(generate_summary(sample_text))

    assert summary.points == ["Plants use light", "Oxygen is released"]


def test_summary_without_points_gets_placeholder(fake_model, run, sample_text):
    fake_model.reply = '{"bullets": ["wrong key"]}'

    summary = run(generate_summary(sample_text))

    assert summary.points == ["Summary not generated correctly"]


def test_mindmap_fills_missing_node_fields(fake_model, run, sample_text):
    fake_model.reply = json.dumps({
        "nodes": [
            {"id": "root", "text": "Photosynthesis", "parentId": None, "position": {"x": 0, "y": 0}},
            {"parentId": "root"},
        ],
        "edges": [{"source": "root", "target": "node-1"}],
    })

    mind_map = run(generate_mindmap(sample_text, {"subject": "biology"}))

    assert mind_map.nodes[1].id == "node-1"
    assert mind_map.nodes[1].text == "Node 1"
    assert (mind_map.nodes[1].position.x, mind_map.nodes[1].position.y) == (100, 0)
    assert mind_map.edges[0].id == "edge-0"
    assert fake_model.calls[0][1] == settings.MINDMAP_MAX_NEW_TOKENS


def test_mindmap_integer_ids_are_stringified(fake_model, run, sample_text):
    fake_model.reply = json.dumps({
        "nodes": [
            {"id": 1, "text": "Photosynthesis", "parentId": None, "position": {"x": 0, "y": 0}},
            {"id": 2, "text": "Chloroplasts", "parentId": 1, "position": {"x": 100, "y": 0}},
        ],
        "edges": [{"id": 10, "source": 1, "target": 2}],
    })

    mind_map = run(generate_mindmap(sample_text, {"subject": "biology"}))

    assert [n.text for n in mind_map.nodes] == ["Photosynthesis", "Chloroplasts"]
    assert [n.id for n in mind_map.nodes] == ["1", "2"]
    assert mind_map.nodes[0].parent_id is None
    assert mind_map.nodes[1].parent_id == "1"
    assert (mind_map.edges[0].id, mind_map.edges[0].source, mind_map.edges[0].target) == ("10", "1", "2")


def test_mindmap_edge_without_endpoint_falls_back(fake_model, run, sample_text):
    fake_model.reply = json.dumps({
        "nodes": [{"id": "root", "text": "Root", "parentId": None, "position": {"x": 0, "y": 0}}],
        "edges": [{"id": "e1", "source": "root"}],
    })

    mind_map = run(generate_mindmap(sample_text, {"subject": "biology"}))

    assert mind_map == fallbacks.fallback_mindmap(sample_text, {"subject": "biology"})


def test_quiz_answers_normalised_to_four(fake_model, run, sample_text):
    fake_model.reply = json.dumps({"questions": [
        {"question": "Q1", "answers": ["a", "b"], "correctAnswerIndex": 1},
        {"question": "Q2", "answers": "not a list", "correctAnswerIndex": 9},
        {"question": "Q3", "answers": ["a", "b", "c", "d", "e"], "correctAnswerIndex": 3},
    ]})

    quiz = run(generate_quiz(sample_text))

    assert quiz.questions[0].answers == ["a", "b", "Option 3", "Option 4"]
    assert quiz.questions[0].correct_answer_index == 1
    assert quiz.questions[1].answers == ["Option 1", "Option 2", "Option 3", "Option 4"]
    assert quiz.questions[1].correct_answer_index == 0
    assert quiz.questions[2].answers == ["a", "b", "c", "d"]
    assert quiz.questions[2].correct_answer_index == 3


# ── Fallback path ────────────────────────────────────────────────────────────

@pytest.mark.parametrize("kind, heuristic", [
    (TransformationType.flashcards, fallbacks.fallback_flashcards),
    (TransformationType.summary, fallbacks.fallback_summary),
    (TransformationType.mindmap, fallbacks.fallback_mindmap),
    (TransformationType.questions, fallbacks.fallback_questions),
    (TransformationType.quiz, fallbacks.fallback_quiz),
])
def test_network_error_uses_fallback(offline_model, run, sample_text, kind, heuristic):
    options = {"subject": "biology"}
    assert run(generate_content(kind, sample_text, options)) == heuristic(sample_text, options)


@pytest.mark.parametrize("reply", [
    "I cannot help with that.",
    '[{"question": "unterminated"',
    "[]",
    '{"not": "a list"}',
])
def test_unusable_model_output_uses_fallback(fake_model, run, sample_text, reply):
    fake_model.reply = reply

    cards = run(generate_flashcards(sample_text, {"subject": "biology"}))

    assert cards == fallbacks.fallback_flashcards(sample_text, {"subject": "biology"})


def test_quiz_with_array_top_level_uses_fallback(fake_model, run, sample_text):
    fake_model.reply = '[{"question": "Q", "answers": ["a", "b", "c", "d"]}]'

    quiz = run(generate_quiz(sample_text))

    assert quiz == fallbacks.fallback_quiz(sample_text, {})


# ── Total failure ────────────────────────────────────────────────────────────

def _broken_heuristic(text, options):
    raise RuntimeError("heuristic exploded")


@pytest.mark.parametrize("kind", list(TransformationType))
def test_total_failure_returns_error_sentinel(offline_model, run, monkeypatch, kind):
    generator = ai_engine.GENERATORS[kind]
    broken = dataclasses.replace(generator, fallback=_broken_heuristic)
    monkeypatch.setitem(ai_engine.GENERATORS, kind, broken)

    result = run(generate_content(kind, "Some study text here."))

    assert is_degraded(serialize_content(result))


def test_healthy_output_is_not_degraded(offline_model, run, sample_text):
    result = run(generate_quiz(sample_text))
    assert not is_degraded(serialize_content(result))


@pytest.mark.parametrize("kind", list(TransformationType))
def test_sentences_about_errors_are_not_degraded(offline_model, run, kind):
    text = (
        "Error generating reports is common in legacy systems. "
        "Error generating flashcards happens when input is empty. "
        "Error generating summary output needs a retry."
    )

    result = run(generate_content(kind, text, {"subject": "Error generating quiz"}))

    assert not is_degraded(serialize_content(result))


# ── Shape & serialisation ────────────────────────────────────────────────────

@pytest.mark.parametrize("kind", list(TransformationType))
def test_every_type_returns_non_empty_structure(offline_model, run, kind):
    result = run(generate_content(kind, "Short text!"))

    data = serialize_content(result)
    if isinstance(data, list):
        assert data
    elif kind is TransformationType.summary:
        assert data["points"]
    elif kind is TransformationType.mindmap:
        assert data["nodes"]
    else:
        assert data["questions"]
        assert all(len(q["answers"]) == 4 for q in data["questions"])


def test_serialised_content_uses_camel_case(offline_model, run, sample_text):
    mind_map = serialize_content(run(generate_mindmap(sample_text)))
    quiz = serialize_content(run(generate_quiz(sample_text)))

    assert "parentId" in mind_map["nodes"][0]
    assert "correctAnswerIndex" in quiz["questions"][0]


@pytest.mark.parametrize("kind, model", [
    (TransformationType.summary, Summary),
    (TransformationType.mindmap, MindMap),
    (TransformationType.quiz, Quiz),
])
def test_content_survives_json_round_trip(offline_model, run, sample_text, kind, model):
    result = run(generate_content(kind, sample_text))

    restored = model.model_validate(json.loads(json.dumps(serialize_content(result))))

    assert restored == result


@pytest.mark.parametrize("kind, model", [
    (TransformationType.flashcards, Flashcard),
    (TransformationType.questions, Question),
])
def test_list_content_survives_json_round_trip(offline_model, run, sample_text, kind, model):
    result = run(generate_content(kind, sample_text))

    restored = [model.model_validate(item) for item in json.loads(json.dumps(serialize_content(result)))]

    assert restored == result
