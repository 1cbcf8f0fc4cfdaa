import pytest

from studyshift.ai_engine import extract_json_from_text


def test_strips_json_code_fence():
    assert extract_json_from_text('```json\n[{"a":1}]\n```') == [{"a": 1}]


def test_strips_bare_code_fence():
    assert extract_json_from_text('```\n{"points": ["x"]}\n```') == {"points": ["x"]}


def test_ignores_chatter_around_array():
    raw = 'Sure! Here are your flashcards:\n[{"question": "Q", "answer": "A"}]\nGood luck!'
    assert extract_json_from_text(raw) == [{"question": "Q", "answer": "A"}]


def test_object_containing_array_is_not_cut_at_inner_bracket():
    raw = 'Result: {"points": ["first", "second"]} done'
    assert extract_json_from_text(raw) == {"points": ["first", "second"]}


def test_array_of_objects_starts_at_bracket():
    raw = 'noise [{"id": "n1"}, {"id": "n2"}] trailing } brace'
    assert extract_json_from_text(raw) == [{"id": "n1"}, {"id": "n2"}]


@pytest.mark.parametrize("raw", ["", "   ", "no json here at all"])
def test_no_json_raises(raw):
    with pytest.raises(ValueError):
        extract_json_from_text(raw)


def test_unclosed_bracket_raises():
    with pytest.raises(ValueError, match="No valid JSON"):
        extract_json_from_text('[{"question": "Q"')


def test_malformed_json_raises_value_error():
    with pytest.raises(ValueError, match="invalid JSON"):
        extract_json_from_text("[{question: 'Q'}]")
