"""
Unit tests for repository.py.
"""

import asyncio
import dataclasses
import json

import pytest

from exam_catalog.core.models.exams import CreateExamInput
from exam_catalog.core.models.exercises import CreateExerciseInput, DifficultyLevel, ImageType
from exam_catalog.errors import ImageSaveError, SaveFailedError, StorageError
from exam_catalog.services.image_store import ImageUpload
from exam_catalog.services.repository import ExamRepository
from exam_catalog.storage.memory import InMemoryStore


class FlakyStore(InMemoryStore):
    """Store that fails writes for keys starting with a prefix."""

    def __init__(self, failing_prefix: str):
        super().__init__()
        self.failing_prefix = failing_prefix

    def set_item(self, key, value):
        if key.startswith(self.failing_prefix):
            raise StorageError(f"cannot write {key}")
        super().set_item(key, value)


class TestExams:
    """Tests for exam creation and lookup."""

    def test_create_exam_when_valid_input_then_returns_exam(self, repo, math_exam_input):
        exam = repo.create_exam(math_exam_input)

        assert exam.id
        assert (exam.subject, exam.school_year, exam.exam_year) == ("Math", "2023-2024", 2024)
        assert exam.updated_at == exam.created_at

    def test_create_exam_when_created_then_lookup_returns_same_record(self, repo, math_exam_input):
        exam = repo.create_exam(math_exam_input)

        assert repo.get_exam_by_id(exam.id) == exam

    def test_create_exam_when_several_then_unique_ids_in_order(self, store, math_exam_input):
        """Default uuid ids should be unique; get_exams keeps insertion order."""
        repo = ExamRepository(store)
        exams = [repo.create_exam(math_exam_input) for _ in range(5)]

        assert len({exam.id for exam in exams}) == 5
        assert repo.get_exams() == exams

    def test_create_exam_when_created_then_empty_markdown_written(self, repo, store, math_exam_input):
        exam = repo.create_exam(math_exam_input)

        markdown = store.get_item(f"markdown_{exam.id}")
        assert markdown.startswith("# Math Exam (2024)\n\n")
        assert "## Exercise" not in markdown

    def test_create_exam_when_persisted_then_stored_as_json_array(self, repo, store, math_exam_input):
        exam = repo.create_exam(math_exam_input)

        data = json.loads(store.get_item("exams"))
        assert data[0]["id"] == exam.id
        assert data[0]["schoolYear"] == "2023-2024"

    def test_get_exam_by_id_when_unknown_then_none(self, repo):
        assert repo.get_exam_by_id("missing") is None
        assert repo.get_exams() == []

    def test_create_exam_when_store_fails_then_raises_save_failed(self, math_exam_input):
        repo = ExamRepository(FlakyStore("exams"))

        with pytest.raises(SaveFailedError) as exc_info:
            repo.create_exam(math_exam_input)

        assert isinstance(exc_info.value.__cause__, StorageError)


class TestExercises:
    """Tests for exercise creation and lookup."""

    def test_create_exercise_when_first_then_order_one_no_images(self, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)

        exercise = asyncio.run(repo.create_exercise(exam.id, algebra_input))

        assert exercise.order_number == 1
        assert exercise.images == ()
        assert exercise.exam_id == exam.id
        assert repo.get_exercise_by_id(exercise.id) == exercise

    def test_create_exercise_when_created_then_markdown_updated(self, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)
        asyncio.run(repo.create_exercise(exam.id, algebra_input))

        markdown = repo.exporter.get_exam_markdown(exam.id)

        assert "# Math Exam (2024)" in markdown
        assert "## Exercise 1" in markdown

    def test_create_exercise_when_second_then_order_two(self, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)
        asyncio.run(repo.create_exercise(exam.id, algebra_input))

        second = asyncio.run(repo.create_exercise(exam.id, algebra_input))

        assert second.order_number == 2
        assert [ex.order_number for ex in repo.get_exercises_by_exam_id(exam.id)] == [1, 2]

    def test_create_exercise_when_sequential_then_orders_are_one_to_n(self, repo, math_exam_input, algebra_input):
        """Order numbers per exam form 1..N independently of other exams."""
        exam_a = repo.create_exam(math_exam_input)
        exam_b = repo.create_exam(CreateExamInput("Physics", "2023-2024", 2024))

        async def add_all():
            for i in range(6):
                exam_id = exam_a.id if i % 3 else exam_b.id
                await repo.create_exercise(exam_id, algebra_input)

        asyncio.run(add_all())

        assert [ex.order_number for ex in repo.get_exercises_by_exam_id(exam_a.id)] == [1, 2, 3, 4]
        assert [ex.order_number for ex in repo.get_exercises_by_exam_id(exam_b.id)] == [1, 2]

    def test_get_exercises_when_stored_out_of_order_then_sorted(self, store, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)
        for _ in range(3):
            asyncio.run(repo.create_exercise(exam.id, algebra_input))
        records = json.loads(store.get_item("exercises"))
        store.set_item("exercises", json.dumps(list(reversed(records))))

        exercises = repo.get_exercises_by_exam_id(exam.id)

        assert [ex.order_number for ex in exercises] == [1, 2, 3]

    def test_create_exercise_when_multiple_choice_then_correct_answer_kept(self, repo, math_exam_input):
        exam = repo.create_exam(math_exam_input)
        data = CreateExerciseInput(
            topic="Geometry",
            subtopic="Angles",
            difficulty_level=DifficultyLevel.MEDIUM,
            question="Which is a right angle? A) 45 B) 90",
            answer="A right angle measures 90 degrees",
            is_multiple_choice=True,
            correct_answer="B) 90",
        )

        exercise = asyncio.run(repo.create_exercise(exam.id, data))

        assert repo.get_exercise_by_id(exercise.id).correct_answer == "B) 90"
        assert "**Correct Answer:** B) 90" in repo.exporter.get_exam_markdown(exam.id)

    def test_create_exercise_when_images_then_saved_in_slot_order(self, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)
        images = {
            "answer": ImageUpload("a.png", content=b"answer-bytes"),
            ImageType.STATEMENT: ImageUpload("s.png", content=b"statement-bytes"),
            "question": None,
        }

        exercise = asyncio.run(repo.create_exercise(exam.id, algebra_input, images))

        assert [image.type for image in exercise.images] == [ImageType.STATEMENT, ImageType.ANSWER]
        assert exercise.images[0].path == f"/images/{exam.id}/{exercise.id}/statement/s.png"
        assert all(image.exercise_id == exercise.id for image in exercise.images)
        assert repo.images.get_image_bytes(exercise.images[1].path) == b"answer-bytes"
        assert f"- answer: {exercise.images[1].path}" in repo.exporter.get_exam_markdown(exam.id)

    def test_create_exercise_when_image_fails_then_no_exercise_written(
        self, repo, store, math_exam_input, algebra_input, tmp_path
    ):
        """A failed image leaves earlier images orphaned and no exercise record."""
        exam = repo.create_exam(math_exam_input)
        images = {
            "statement": ImageUpload("s.png", content=b"ok"),
            "question": ImageUpload.from_path(tmp_path / "missing.png"),
        }

        with pytest.raises(SaveFailedError, match="one or more images") as exc_info:
            asyncio.run(repo.create_exercise(exam.id, algebra_input, images))

        assert isinstance(exc_info.value.__cause__, ImageSaveError)
        assert repo.get_exercises_by_exam_id(exam.id) == []
        assert store.get_item("exercises") is None
        assert any(key.endswith("/statement/s.png") for key in store.keys())

    def test_create_exercise_when_unknown_slot_then_raises_value_error(self, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)

        with pytest.raises(ValueError, match="unknown image slot"):
            asyncio.run(repo.create_exercise(exam.id, algebra_input, {"diagram": ImageUpload("d.png", content=b"")}))

    def test_create_exercise_when_difficulty_unknown_then_nothing_written(
        self, repo, store, math_exam_input, algebra_input,
    ):
        exam = repo.create_exam(math_exam_input)
        keys_before = set(store.keys())
        data = dataclasses.replace(algebra_input, difficulty_level="Impossible")
        images = {"question": ImageUpload("q.png", content=b"png")}

        with pytest.raises(ValueError, match="unknown difficulty level"):
            asyncio.run(repo.create_exercise(exam.id, data, images))

        assert set(store.keys()) == keys_before

    def test_create_exercise_when_difficulty_is_text_then_coerced(self, repo, math_exam_input, algebra_input):
        exam = repo.create_exam(math_exam_input)
        data = dataclasses.replace(algebra_input, difficulty_level="Hard")

        exercise = asyncio.run(repo.create_exercise(exam.id, data))

        assert exercise.difficulty_level is DifficultyLevel.HARD

    def test_create_exercise_when_exam_unknown_then_skips_markdown(self, repo, store, algebra_input):
        """Creation still succeeds; no export is written."""
        exercise = asyncio.run(repo.create_exercise("ghost", algebra_input))

        assert exercise.order_number == 1
        assert store.get_item("markdown_ghost") is None

    def test_create_exercise_when_collection_write_fails_then_raises_save_failed(
        self, math_exam_input, algebra_input
    ):
        store = FlakyStore("exercises")
        repo = ExamRepository(store)
        exam = repo.create_exam(math_exam_input)

        with pytest.raises(SaveFailedError):
            asyncio.run(repo.create_exercise(exam.id, algebra_input))

    def test_get_exercise_by_id_when_unknown_then_none(self, repo):
        assert repo.get_exercise_by_id("missing") is None
        assert repo.get_exercises_by_exam_id("missing") == []
