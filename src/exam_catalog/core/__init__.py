"""
Exam Catalog Core Package

Shared record models, input validation and serialization used by the
storage services and the command line front end.
"""

from .models import (
    CreateExamInput,
    CreateExerciseInput,
    DifficultyLevel,
    Exam,
    Exercise,
    ExerciseImage,
    ImageType,
)
from .schemas.validator import ValidationError

__all__ = [
    "CreateExamInput",
    "CreateExerciseInput",
    "DifficultyLevel",
    "Exam",
    "Exercise",
    "ExerciseImage",
    "ImageType",
    "ValidationError",
]
