"""
Validation Utilities

Validates caller input before it reaches the repository, and stored JSON
records before they are turned into models.

Input rules are the ones the catalog forms enforce:
- Exam: subject and school year required, school year "YYYY-YYYY",
  exam year between 2000 and next year
- Exercise: topic, subtopic, question and answer required, correct
  answer required for multiple-choice questions

The repository itself does not call the input validators; front ends do.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Optional

from ..models.exams import CreateExamInput
from ..models.exercises import CreateExerciseInput

MIN_EXAM_YEAR = 2000
SCHOOL_YEAR_PATTERN = re.compile(r"^\d{4}-\d{4}$")

EXAM_RECORD_FIELDS = ("id", "subject", "schoolYear", "examYear", "createdAt")
EXERCISE_RECORD_FIELDS = (
    "id", "examId", "orderNumber", "topic", "subtopic",
    "difficultyLevel", "question", "answer",
)
IMAGE_RECORD_FIELDS = ("id", "exerciseId", "type", "path")


class ValidationError(Exception):
    """Raised when input or stored data is invalid.

    Attributes:
        path: Dotted location of the first failure for record checks
        errors: Field name -> message for every failing field
    """

    def __init__(
        self,
        message: str,
        path: str = "",
        errors: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.path = path
        self.errors = errors or {}


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_exam_input(
    data: CreateExamInput,
    *,
    current_year: Optional[int] = None,
) -> None:
    """
    Validate exam fields before creation.

    Args:
        data: Exam input to check
        current_year: Override for "this year" (defaults to today's year)

    Raises:
        ValidationError: With one entry per failing field
    """
    errors: dict[str, str] = {}
    year_now = current_year if current_year is not None else date.today().year
    max_year = year_now + 1

    if _is_blank(data.subject):
        errors["subject"] = "Subject is required"

    if _is_blank(data.school_year):
        errors["school_year"] = "School year is required"
    elif not SCHOOL_YEAR_PATTERN.match(data.school_year):
        errors["school_year"] = "School year must be in format YYYY-YYYY"

    if data.exam_year is None:
        errors["exam_year"] = "Exam year is required"
    elif not (MIN_EXAM_YEAR <= data.exam_year <= max_year):
        errors["exam_year"] = f"Exam year must be between {MIN_EXAM_YEAR} and {max_year}"

    if errors:
        raise ValidationError(
            f"Invalid exam: {', '.join(sorted(errors))}",
            path=next(iter(errors)),
            errors=errors,
        )


def validate_exercise_input(data: CreateExerciseInput) -> None:
    """
    Validate exercise fields before creation.

    Args:
        data: Exercise input to check

    Raises:
        ValidationError: With one entry per failing field
    """
    errors: dict[str, str] = {}

    if _is_blank(data.topic):
        errors["topic"] = "Topic is required"
    if _is_blank(data.subtopic):
        errors["subtopic"] = "Subtopic is required"
    if _is_blank(data.question):
        errors["question"] = "Question is required"
    if _is_blank(data.answer):
        errors["answer"] = "Answer is required"
    if data.is_multiple_choice and _is_blank(data.correct_answer):
        errors["correct_answer"] = "Correct answer is required for multiple choice questions"

    if errors:
        raise ValidationError(
            f"Invalid exercise: {', '.join(sorted(errors))}",
            path=next(iter(errors)),
            errors=errors,
        )


def validate_exam_record(data: dict[str, Any]) -> None:
    """
    Check a stored exam record has every required key.

    Raises:
        ValidationError: If keys are missing
    """
    _require_fields(data, EXAM_RECORD_FIELDS, "exam")


def validate_exercise_record(data: dict[str, Any]) -> None:
    """
    Check a stored exercise record and its embedded images.

    Raises:
        ValidationError: If keys are missing or images is not a list
    """
    _require_fields(data, EXERCISE_RECORD_FIELDS, "exercise")
    images = data.get("images") or []
    if not isinstance(images, list):
        raise ValidationError(
            f"Exercise {data['id']!r} images must be a list",
            path="images",
        )
    for index, image in enumerate(images):
        _require_fields(image, IMAGE_RECORD_FIELDS, f"images[{index}]")


def _require_fields(data: Any, required: tuple[str, ...], path: str) -> None:
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must be an object, got {type(data).__name__}", path=path)
    missing = [f for f in required if f not in data]
    if missing:
        raise ValidationError(
            f"Missing required {path} fields: {missing}",
            path=path,
            errors={f: f"Missing field: {f}" for f in missing},
        )
