import itertools
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from PIL import Image

# Add src to sys.path so we can import exam_catalog
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from exam_catalog.core.models.exams import CreateExamInput
from exam_catalog.core.models.exercises import CreateExerciseInput, DifficultyLevel
from exam_catalog.services.repository import ExamRepository
from exam_catalog.storage.memory import InMemoryStore

FIXED_NOW = datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc)


# Common test fixtures
@pytest.fixture
def store() -> InMemoryStore:
    """Return an empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def id_factory():
    """Return a factory yielding id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def repo(store, id_factory) -> ExamRepository:
    """Repository with deterministic ids and a fixed clock."""
    return ExamRepository(store, id_factory=id_factory, clock=lambda: FIXED_NOW)


@pytest.fixture
def math_exam_input() -> CreateExamInput:
    return CreateExamInput(subject="Math", school_year="2023-2024", exam_year=2024)


@pytest.fixture
def algebra_input() -> CreateExerciseInput:
    return CreateExerciseInput(
        topic="Algebra",
        subtopic="Equations",
        difficulty_level=DifficultyLevel.EASY,
        question="Solve x+1=2",
        answer="x=1",
        is_multiple_choice=False,
    )


@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple test image."""
    img = Image.new("RGB", (20, 10), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path
