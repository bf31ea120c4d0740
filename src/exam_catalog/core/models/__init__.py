"""
Core Models Package

Immutable record types persisted by the storage layer. All models are frozen
dataclasses with ``to_dict()`` / ``from_dict()`` matching the stored JSON.
"""

from .exams import CreateExamInput, Exam
from .exercises import (
    IMAGE_SLOT_ORDER,
    CreateExerciseInput,
    DifficultyLevel,
    Exercise,
    ExerciseImage,
    ImageType,
)

__all__ = [
    "CreateExamInput",
    "Exam",
    "CreateExerciseInput",
    "DifficultyLevel",
    "Exercise",
    "ExerciseImage",
    "ImageType",
    "IMAGE_SLOT_ORDER",
]
