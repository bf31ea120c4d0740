"""
Module: exercises

Purpose:
    Provides the Exercise and ExerciseImage dataclasses together with the
    enums for difficulty and image slot. An exercise belongs to one exam and
    carries its 1-based position among that exam's exercises.

Key Functions:
    - Exercise.to_dict() / Exercise.from_dict(): Serialization
    - ExerciseImage.to_dict() / ExerciseImage.from_dict(): Serialization
    - CreateExerciseInput: Caller-supplied exercise fields

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - core.utils.serialization
    - services.repository
    - services.markdown_exporter
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DifficultyLevel(str, Enum):
    """Difficulty of an exercise as shown to teachers."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ImageType(str, Enum):
    """Exercise field an image illustrates."""

    STATEMENT = "statement"
    QUESTION = "question"
    ANSWER = "answer"


# Order in which image slots are persisted and listed
IMAGE_SLOT_ORDER: tuple[ImageType, ...] = (
    ImageType.STATEMENT,
    ImageType.QUESTION,
    ImageType.ANSWER,
)


@dataclass(frozen=True)
class ExerciseImage:
    """
    Reference to a stored exercise image.

    Attributes:
        id: Opaque unique identifier
        exercise_id: Owning exercise
        type: Which field the image illustrates
        path: Derived storage key "/images/{examId}/{exerciseId}/{type}/{filename}"
    """

    id: str
    exercise_id: str
    type: ImageType
    path: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "exerciseId": self.exercise_id,
            "type": self.type.value,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ExerciseImage:
        return cls(
            id=data["id"],
            exercise_id=data["exerciseId"],
            type=ImageType(data["type"]),
            path=data["path"],
        )


@dataclass(frozen=True)
class CreateExerciseInput:
    """
    Fields a caller supplies to create an exercise.

    Not validated on construction; see ``validate_exercise_input``.
    ``correct_answer`` is expected when ``is_multiple_choice`` is True.
    """

    topic: str
    subtopic: str
    difficulty_level: DifficultyLevel
    question: str
    answer: str
    is_multiple_choice: bool = False
    correct_answer: Optional[str] = None
    statement: Optional[str] = None


@dataclass(frozen=True)
class Exercise:
    """
    Stored exercise record (immutable).

    Attributes:
        id: Opaque unique identifier
        exam_id: Owning exam (non-owning reference)
        order_number: 1-based position among the exam's exercises
        topic: Main topic
        subtopic: Sub-topic
        difficulty_level: Easy, Medium or Hard
        question: Question text
        answer: Answer text
        is_multiple_choice: Whether the question offers choices
        correct_answer: Correct choice for multiple-choice questions
        statement: Optional preamble shown before the question
        images: Images in slot order (statement, question, answer)

    Invariants:
        - order_number >= 1
        - at most one image per ImageType
    """

    id: str
    exam_id: str
    order_number: int
    topic: str
    subtopic: str
    difficulty_level: DifficultyLevel
    question: str
    answer: str
    is_multiple_choice: bool = False
    correct_answer: Optional[str] = None
    statement: Optional[str] = None
    images: tuple[ExerciseImage, ...] = ()

    def __post_init__(self) -> None:
        """Validate exercise on construction."""
        if self.order_number < 1:
            raise ValueError(f"order_number must be >= 1: {self.order_number}")
        types = [image.type for image in self.images]
        if len(types) != len(set(types)):
            raise ValueError(f"duplicate image types for exercise {self.id!r}: {types}")

    @classmethod
    def create(
        cls,
        exercise_id: str,
        exam_id: str,
        order_number: int,
        data: CreateExerciseInput,
        images: tuple[ExerciseImage, ...] = (),
    ) -> Exercise:
        """Build a new exercise from caller input."""
        return cls(
            id=exercise_id,
            exam_id=exam_id,
            order_number=order_number,
            topic=data.topic,
            subtopic=data.subtopic,
            difficulty_level=DifficultyLevel(data.difficulty_level),
            question=data.question,
            answer=data.answer,
            is_multiple_choice=data.is_multiple_choice,
            correct_answer=data.correct_answer,
            statement=data.statement,
            images=images,
        )

    def get_image(self, image_type: ImageType | str) -> Optional[ExerciseImage]:
        """
        Find the image for a slot.

        Args:
            image_type: Slot like ImageType.QUESTION or "question"

        Returns:
            Matching ExerciseImage or None
        """
        wanted = ImageType(image_type)
        for image in self.images:
            if image.type is wanted:
                return image
        return None

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """
        Serialize to dictionary for JSON storage.

        Note: Optional text fields are omitted when unset.

        Returns:
            Dict with camelCase keys and an embedded images list
        """
        d = {
            "id": self.id,
            "examId": self.exam_id,
            "orderNumber": self.order_number,
            "topic": self.topic,
            "subtopic": self.subtopic,
            "isMultipleChoice": self.is_multiple_choice,
            "difficultyLevel": self.difficulty_level.value,
            "question": self.question,
            "answer": self.answer,
            "images": [image.to_dict() for image in self.images],
        }
        if self.correct_answer is not None:
            d["correctAnswer"] = self.correct_answer
        if self.statement is not None:
            d["statement"] = self.statement
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Exercise:
        """
        Deserialize from dictionary.

        Args:
            data: Dict representation as written by to_dict()

        Returns:
            Exercise instance
        """
        return cls(
            id=data["id"],
            exam_id=data["examId"],
            order_number=int(data["orderNumber"]),
            topic=data["topic"],
            subtopic=data["subtopic"],
            difficulty_level=DifficultyLevel(data["difficultyLevel"]),
            question=data["question"],
            answer=data["answer"],
            is_multiple_choice=bool(data.get("isMultipleChoice", False)),
            correct_answer=data.get("correctAnswer"),
            statement=data.get("statement"),
            images=tuple(ExerciseImage.from_dict(image) for image in data.get("images") or []),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return (
            f"Exercise({self.id!r}, exam={self.exam_id!r}, "
            f"order={self.order_number}, topic={self.topic!r})"
        )
