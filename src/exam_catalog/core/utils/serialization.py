"""
Serialization Utilities

Converts the exam and exercise collections to and from the JSON text kept
in the key-value store.

- Every model has ``to_dict()`` / ``from_dict()``
- Collections are stored as JSON arrays under one key each
- Records are checked for required keys before they become models
"""

from __future__ import annotations

import json
from typing import Any, Optional

from ..models.exams import Exam
from ..models.exercises import Exercise
from ..schemas.validator import ValidationError, validate_exam_record, validate_exercise_record


# ─────────────────────────────────────────────────────────────────────────────
# Exam Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_exams(exams: list[Exam]) -> str:
    """
    Serialize exams to a JSON array string.

    Args:
        exams: Exams in storage order

    Returns:
        JSON text suitable for the ``exams`` key
    """
    return json.dumps([exam.to_dict() for exam in exams], ensure_ascii=False)


def deserialize_exams(text: Optional[str], *, validate: bool = True) -> list[Exam]:
    """
    Deserialize exams from stored JSON text.

    Args:
        text: Stored value, or None when the key is absent
        validate: Whether to check required keys first

    Returns:
        Exams in storage order (empty when text is None or empty)

    Raises:
        ValidationError: If the payload is not a list or a record is invalid
    """
    exams = []
    for data in _load_array(text, "exams"):
        if validate:
            validate_exam_record(data)
        try:
            exams.append(Exam.from_dict(data))
        except ValueError as e:
            raise ValidationError(f"Invalid exam {data.get('id')!r}: {e}", path="exams") from e
    return exams


# ─────────────────────────────────────────────────────────────────────────────
# Exercise Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_exercises(exercises: list[Exercise]) -> str:
    """
    Serialize exercises (with embedded images) to a JSON array string.

    Args:
        exercises: Exercises in storage order

    Returns:
        JSON text suitable for the ``exercises`` key
    """
    return json.dumps([exercise.to_dict() for exercise in exercises], ensure_ascii=False)


def deserialize_exercises(text: Optional[str], *, validate: bool = True) -> list[Exercise]:
    """
    Deserialize exercises from stored JSON text.

    Args:
        text: Stored value, or None when the key is absent
        validate: Whether to check required keys first

    Returns:
        Exercises in storage order

    Raises:
        ValidationError: If the payload is not a list or a record is invalid
    """
    exercises = []
    for data in _load_array(text, "exercises"):
        if validate:
            validate_exercise_record(data)
        try:
            exercises.append(Exercise.from_dict(data))
        except ValueError as e:
            raise ValidationError(f"Invalid exercise {data.get('id')!r}: {e}", path="exercises") from e
    return exercises


def _load_array(text: Optional[str], key: str) -> list[Any]:
    """Parse a stored JSON array; absent or empty values mean no records."""
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Stored {key} is not valid JSON: {e}", path=key) from e
    if not isinstance(data, list):
        raise ValidationError(
            f"Stored {key} must be a JSON array, got {type(data).__name__}",
            path=key,
        )
    return data
