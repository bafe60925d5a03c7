"""Question set codec.

Assessments persist their questions as one JSON string. The current layout is a
versioned envelope::

    {"version": 1, "questions": [{"text": ..., "options": [...], "correctIndex": 0}, ...]}

Blobs written by the first authoring form are a bare JSON array whose items
use ``question`` instead of ``text``; those decode as the legacy layout.
Decoding is strict: any shape mismatch raises `MalformedQuestionSet`.
"""

import json
import logging
from typing import List, Sequence

from pydantic import ValidationError

from edusync.assessments.models import Question
from edusync.errors import MalformedQuestionSet

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1

_V1_KEYS = {"text", "options", "correctIndex"}
_LEGACY_KEYS = {"question", "options", "correctIndex"}


def encode(questions: Sequence[Question]) -> str:
    """Serialize questions into the current envelope, preserving order"""
    payload = {
        "version": CURRENT_VERSION,
        "questions": [
            {"text": q.text, "options": list(q.options), "correctIndex": q.correct_index}
            for q in questions
        ],
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _build(item, position: int, expected_keys: set, text_key: str) -> Question:
    if not isinstance(item, dict):
        raise MalformedQuestionSet("expected an object", position)
    keys = set(item)
    if keys != expected_keys:
        missing = sorted(expected_keys - keys)
        extra = sorted(keys - expected_keys)
        parts = []
        if missing:
            parts.append(f"missing {', '.join(missing)}")
        if extra:
            parts.append(f"unexpected {', '.join(extra)}")
        raise MalformedQuestionSet("; ".join(parts), position)
    try:
        return Question.model_validate(
            {"text": item[text_key], "options": item["options"], "correctIndex": item["correctIndex"]},
            strict=True,
        )
    except ValidationError as e:
        reason = e.errors()[0].get("msg", "invalid question")
        raise MalformedQuestionSet(reason, position) from e


def decode(blob: str) -> List[Question]:
    """Parse a stored question set. Raises `MalformedQuestionSet`."""
    if not isinstance(blob, str):
        raise MalformedQuestionSet("question set must be a string")
    try:
        data = json.loads(blob)
    except ValueError as e:
        raise MalformedQuestionSet(f"not valid JSON: {e}") from e

    if isinstance(data, list):
        return [_build(item, i, _LEGACY_KEYS, "question") for i, item in enumerate(data)]

    if not isinstance(data, dict):
        raise MalformedQuestionSet("expected an object or array at top level")

    version = data.get("version")
    if type(version) is not int or version != CURRENT_VERSION:
        raise MalformedQuestionSet(f"unsupported question set version: {version!r}")
    if set(data) != {"version", "questions"}:
        raise MalformedQuestionSet("envelope must contain exactly 'version' and 'questions'")
    questions = data["questions"]
    if not isinstance(questions, list):
        raise MalformedQuestionSet("'questions' must be an array")
    return [_build(item, i, _V1_KEYS, "text") for i, item in enumerate(questions)]


def max_score(blob: str) -> int:
    return len(decode(blob))


def safe_decode(blob: str, context: str = "") -> List[Question]:
    """Decode for aggregation callers: a broken set counts as empty"""
    try:
        return decode(blob)
    except MalformedQuestionSet as e:
        logger.warning("Unreadable question set%s: %s", f" ({context})" if context else "", e.message)
        return []
