"""
Module: services.repository

Purpose:
    Single source of truth for exams and exercises. Owns the ``exams`` and
    ``exercises`` collections, generates identifiers and order numbers, and
    saves images and the markdown export as side effects of creation.

Key Classes:
    - ExamRepository: create/read operations for exams and exercises

Dependencies:
    - storage.KeyValueStore: Injected persistence medium
    - services.image_store.ImageStore
    - services.markdown_exporter.MarkdownExporter

Used By:
    - cli: All catalog commands

Limitations:
    Each collection is read-modify-written as a whole. Two interleaved
    create_exercise calls for the same exam can both read N existing
    exercises and both assign order number N + 1. Images saved before a
    failing image are not removed.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from exam_catalog.core.models.exams import CreateExamInput, Exam
from exam_catalog.core.models.exercises import (
    IMAGE_SLOT_ORDER,
    CreateExerciseInput,
    DifficultyLevel,
    Exercise,
    ExerciseImage,
    ImageType,
)
from exam_catalog.core.utils.serialization import (
    deserialize_exams,
    deserialize_exercises,
    serialize_exams,
    serialize_exercises,
)
from exam_catalog.errors import SaveFailedError, StorageError
from exam_catalog.services.image_store import ImageStore, ImageUpload
from exam_catalog.services.markdown_exporter import MarkdownExporter
from exam_catalog.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

EXAMS_STORAGE_KEY = "exams"
EXERCISES_STORAGE_KEY = "exercises"


def generate_id() -> str:
    """Random UUID4 string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExamRepository:
    """
    Create and read exams and exercises.

    Input is not validated here; front ends call the validators first.
    Lookups that find nothing return None.

    Attributes:
        images: Image store used for exercise uploads
        exporter: Markdown exporter refreshed after each creation

    Example:
        >>> repo = ExamRepository(InMemoryStore())
        >>> exam = repo.create_exam(CreateExamInput("Math", "2023-2024", 2024))
        >>> exercise = asyncio.run(repo.create_exercise(exam.id, data))
        >>> exercise.order_number
        1
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        image_store: Optional[ImageStore] = None,
        exporter: Optional[MarkdownExporter] = None,
        id_factory: Callable[[], str] = generate_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self.images = image_store or ImageStore(store)
        self.exporter = exporter or MarkdownExporter(store)
        self._new_id = id_factory
        self._now = clock

    # ─────────────────────────────────────────────────────────────────────────
    # Collection Access
    # ─────────────────────────────────────────────────────────────────────────

    def _load_exams(self) -> list[Exam]:
        return deserialize_exams(self._store.get_item(EXAMS_STORAGE_KEY))

    def _load_exercises(self) -> list[Exercise]:
        return deserialize_exercises(self._store.get_item(EXERCISES_STORAGE_KEY))

    def _save_collection(self, key: str, text: str) -> None:
        try:
            self._store.set_item(key, text)
        except StorageError as e:
            logger.error(f"Failed to save {key}: {e}")
            raise SaveFailedError(f"Failed to save {key}") from e

    # ─────────────────────────────────────────────────────────────────────────
    # Exams
    # ─────────────────────────────────────────────────────────────────────────

    def create_exam(self, data: CreateExamInput) -> Exam:
        """
        Create and persist an exam, then write its empty markdown export.

        Args:
            data: Exam fields (validated by the caller)

        Returns:
            The new Exam

        Raises:
            SaveFailedError: If the exams collection or the export cannot be saved
        """
        exams = self._load_exams()
        exam = Exam.create(self._new_id(), data, self._now())

        exams.append(exam)
        self._save_collection(EXAMS_STORAGE_KEY, serialize_exams(exams))
        logger.info(f"Created exam {exam.id} ({exam.subject} {exam.exam_year})")

        self.exporter.save_exam_markdown(exam, [])
        return exam

    def get_exams(self) -> list[Exam]:
        """All exams in creation order."""
        return self._load_exams()

    def get_exam_by_id(self, exam_id: str) -> Optional[Exam]:
        """Find an exam by id, or None."""
        for exam in self._load_exams():
            if exam.id == exam_id:
                return exam
        return None

    # ─────────────────────────────────────────────────────────────────────────
    # Exercises
    # ─────────────────────────────────────────────────────────────────────────

    async def create_exercise(
        self,
        exam_id: str,
        data: CreateExerciseInput,
        images: Optional[Mapping[ImageType | str, Optional[ImageUpload]]] = None,
    ) -> Exercise:
        """
        Create and persist an exercise with its images.

        Steps:
        1. order_number = existing exercises for exam_id + 1
        2. Save each supplied image (statement, question, answer)
        3. Append the exercise and save the exercises collection
        4. Refresh the exam's markdown export (skipped if the exam is unknown)

        Args:
            exam_id: Owning exam
            data: Exercise fields (validated by the caller)
            images: Optional uploads keyed by slot; None values are ignored

        Returns:
            The new Exercise

        Raises:
            ValueError: If images has a key that is not an image slot, or
                data.difficulty_level is not a difficulty. Nothing is written.
            SaveFailedError: If an image, the collection or the export
                cannot be saved. No exercise is written when an image fails.
        """
        data = _resolve_difficulty(data)
        uploads = _normalize_uploads(images)

        exercises = self._load_exercises()
        order_number = sum(1 for ex in exercises if ex.exam_id == exam_id) + 1
        exercise_id = self._new_id()

        saved_images: list[ExerciseImage] = []
        try:
            for slot in IMAGE_SLOT_ORDER:
                upload = uploads.get(slot)
                if upload is None:
                    continue
                path = await self.images.save_image(exam_id, exercise_id, slot, upload)
                saved_images.append(
                    ExerciseImage(id=self._new_id(), exercise_id=exercise_id, type=slot, path=path)
                )
        except SaveFailedError as e:
            logger.error(f"Failed to save images for exercise {exercise_id}: {e}")
            raise SaveFailedError("Failed to save one or more images") from e

        exercise = Exercise.create(
            exercise_id, exam_id, order_number, data, images=tuple(saved_images)
        )
        exercises.append(exercise)
        self._save_collection(EXERCISES_STORAGE_KEY, serialize_exercises(exercises))
        logger.info(
            f"Created exercise {exercise.id} #{order_number} for exam {exam_id} "
            f"({len(saved_images)} images)"
        )

        exam = self.get_exam_by_id(exam_id)
        if exam is not None:
            self.exporter.save_exam_markdown(exam, self.get_exercises_by_exam_id(exam_id))

        return exercise

    def get_exercises_by_exam_id(self, exam_id: str) -> list[Exercise]:
        """Exercises of an exam sorted by order number."""
        return sorted(
            (ex for ex in self._load_exercises() if ex.exam_id == exam_id),
            key=lambda ex: ex.order_number,
        )

    def get_exercise_by_id(self, exercise_id: str) -> Optional[Exercise]:
        """Find an exercise by id, or None."""
        for exercise in self._load_exercises():
            if exercise.id == exercise_id:
                return exercise
        return None


def _normalize_uploads(
    images: Optional[Mapping[ImageType | str, Optional[ImageUpload]]],
) -> dict[ImageType, ImageUpload]:
    """Map slot names to ImageType, dropping empty slots."""
    uploads: dict[ImageType, ImageUpload] = {}
    for key, upload in (images or {}).items():
        try:
            slot = ImageType(key)
        except ValueError:
            raise ValueError(f"unknown image slot: {key!r}") from None
        if upload is not None:
            uploads[slot] = upload
    return uploads


def _resolve_difficulty(data: CreateExerciseInput) -> CreateExerciseInput:
    """Coerce difficulty_level to DifficultyLevel before anything is written."""
    try:
        difficulty = DifficultyLevel(data.difficulty_level)
    except ValueError:
        raise ValueError(f"unknown difficulty level: {data.difficulty_level!r}") from None
    return dataclasses.replace(data, difficulty_level=difficulty)
