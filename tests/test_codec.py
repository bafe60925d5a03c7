"""Tests for the stored question set format."""

import json

import pytest

from edusync.assessments import codec
from edusync.assessments.models import Question
from edusync.errors import MalformedQuestionSet

from conftest import make_questions


def test_encode_then_decode_preserves_order_and_answers():
    questions = [
        Question(text="2 + 2?", options=["3", "4", "5"], correct_index=1),
        Question(text="Capital of France?", options=["Paris", "Rome"], correct_index=0),
        Question(text="Largest planet?", options=["Mars", "Venus", "Earth", "Jupiter"], correct_index=3),
    ]
    assert codec.decode(codec.encode(questions)) == questions


def test_encode_writes_versioned_envelope():
    data = json.loads(codec.encode(make_questions([2])))
    assert data == {
        "version": 1,
        "questions": [{
            "text": "Question 1",
            "options": ["Option A", "Option B", "Option C", "Option D"],
            "correctIndex": 2,
        }],
    }


def test_empty_question_set():
    assert codec.decode(codec.encode([])) == []
    assert codec.max_score(codec.encode([])) == 0


def test_max_score_is_question_count():
    assert codec.max_score(codec.encode(make_questions([0, 1, 2, 3]))) == 4


def test_decodes_legacy_bare_array():
    blob = json.dumps([
        {"question": "Pick B", "options": ["A", "B"], "correctIndex": 1},
        {"question": "Pick A", "options": ["A", "B", "C"], "correctIndex": 0},
    ])
    questions = codec.decode(blob)
    assert [q.text for q in questions] == ["Pick B", "Pick A"]
    assert [q.correct_index for q in questions] == [1, 0]


def test_unicode_text_survives():
    questions = [Question(text="¿Qué es π?", options=["3.14…", "2.71…"], correct_index=0)]
    assert codec.decode(codec.encode(questions)) == questions


@pytest.mark.parametrize("blob", [
    "not json",
    "42",
    '"a string"',
    '{"version": 2, "questions": []}',
    '{"version": true, "questions": []}',
    '{"version": 1.0, "questions": []}',
    '{"version": "1", "questions": []}',
    '{"questions": []}',
    '{"version": 1, "questions": {}}',
    '{"version": 1, "questions": [], "extra": 1}',
])
def test_rejects_malformed_envelopes(blob):
    with pytest.raises(MalformedQuestionSet):
        codec.decode(blob)


@pytest.mark.parametrize("item", [
    {"text": "Q", "options": ["A", "B"]},
    {"text": "Q", "options": ["A", "B"], "correctIndex": 0, "points": 2},
    {"text": "Q", "options": ["A", "B"], "correctIndex": 2},
    {"text": "Q", "options": ["A", "B"], "correctIndex": -1},
    {"text": "Q", "options": ["A", "B"], "correctIndex": "0"},
    {"text": "Q", "options": ["A", "B"], "correctIndex": 1.0},
    {"text": "Q", "options": ["A"], "correctIndex": 0},
    {"text": "", "options": ["A", "B"], "correctIndex": 0},
    {"text": "Q", "options": ["A", " "], "correctIndex": 0},
    {"text": "Q", "options": ["A", 2], "correctIndex": 0},
    ["Q", ["A", "B"], 0],
])
def test_rejects_malformed_questions(item):
    blob = json.dumps({"version": 1, "questions": [item]})
    with pytest.raises(MalformedQuestionSet):
        codec.decode(blob)


def test_error_names_the_question_position():
    good = {"text": "Q1", "options": ["A", "B"], "correctIndex": 0}
    bad = {"text": "Q2", "options": ["A", "B"], "correctIndex": 5}
    with pytest.raises(MalformedQuestionSet) as exc:
        codec.decode(json.dumps({"version": 1, "questions": [good, bad]}))
    assert exc.value.position == 1
    assert exc.value.message.startswith("Question 2:")


def test_non_string_blob_is_malformed():
    with pytest.raises(MalformedQuestionSet):
        codec.decode(None)


def test_safe_decode_returns_empty_for_broken_sets(caplog):
    assert codec.safe_decode("{broken", "ASM_1") == []
    assert "Unreadable question set (ASM_1)" in caplog.text
