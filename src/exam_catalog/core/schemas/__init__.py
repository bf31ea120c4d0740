"""Validation for caller input and stored records."""

from .validator import (
    ValidationError,
    validate_exam_input,
    validate_exam_record,
    validate_exercise_input,
    validate_exercise_record,
)

__all__ = [
    "ValidationError",
    "validate_exam_input",
    "validate_exam_record",
    "validate_exercise_input",
    "validate_exercise_record",
]
