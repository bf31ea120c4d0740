"""
Module: services.markdown_exporter

Purpose:
    Render an exam and its exercises as a markdown document and cache the
    rendering under ``markdown_{examId}``. The cache is a user-facing
    artifact only; nothing reads it back into the repository.

Key Classes:
    - MarkdownExporter: save/get the cached rendering

Key Functions:
    - render_exam_markdown(): Pure, deterministic rendering

Used By:
    - services.repository: Refreshes the export after every creation
    - cli: Prints or writes the export
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from exam_catalog.core.models.exams import Exam
from exam_catalog.core.models.exercises import Exercise
from exam_catalog.errors import CatalogError, MarkdownSaveError
from exam_catalog.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

MARKDOWN_KEY_PREFIX = "markdown_"
RULE = "---\n\n"


def markdown_key(exam_id: str) -> str:
    """Storage key for an exam's markdown export."""
    return f"{MARKDOWN_KEY_PREFIX}{exam_id}"


def format_created_date(value: datetime) -> str:
    """
    Short en-US date without zero padding.

    Examples:
        >>> format_created_date(datetime(2024, 3, 5))
        '3/5/2024'
    """
    return f"{value.month}/{value.day}/{value.year}"


def render_exercise_markdown(exercise: Exercise) -> str:
    """Render one exercise section, ending with a horizontal rule."""
    markdown = f"## Exercise {exercise.order_number}\n\n"
    markdown += f"**Topic:** {exercise.topic}\n"
    markdown += f"**Subtopic:** {exercise.subtopic}\n"
    markdown += f"**Difficulty:** {exercise.difficulty_level.value}\n\n"

    if exercise.statement:
        markdown += f"### Statement\n\n{exercise.statement}\n\n"

    markdown += f"### Question\n\n{exercise.question}\n\n"

    if exercise.is_multiple_choice:
        markdown += f"**Correct Answer:** {exercise.correct_answer or ''}\n\n"

    markdown += f"### Answer\n\n{exercise.answer}\n\n"

    if exercise.images:
        markdown += "### Images\n\n"
        for image in exercise.images:
            markdown += f"- {image.type.value}: {image.path}\n"

    markdown += RULE
    return markdown


def render_exam_markdown(exam: Exam, exercises: Iterable[Exercise]) -> str:
    """
    Render an exam document.

    Exercises are written in the order given; callers pass them sorted by
    order number.

    Args:
        exam: Exam for the header
        exercises: Exercises of that exam

    Returns:
        Markdown text
    """
    markdown = f"# {exam.subject} Exam ({exam.exam_year})\n\n"
    markdown += f"School Year: {exam.school_year}\n"
    markdown += f"Created: {format_created_date(exam.created_at)}\n\n"
    markdown += RULE

    for exercise in exercises:
        markdown += render_exercise_markdown(exercise)

    return markdown


class MarkdownExporter:
    """Caches rendered exam markdown in a KeyValueStore."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def save_exam_markdown(self, exam: Exam, exercises: Iterable[Exercise]) -> None:
        """
        Render and store the export, replacing any previous one.

        Raises:
            MarkdownSaveError: If rendering or the store write fails
        """
        exercises = list(exercises)
        try:
            markdown = render_exam_markdown(exam, exercises)
            self._store.set_item(markdown_key(exam.id), markdown)
        except (OSError, ValueError, TypeError, CatalogError) as e:
            logger.error(f"Failed to save markdown for exam {exam.id}: {e}")
            raise MarkdownSaveError("Failed to save markdown") from e

        logger.debug(f"Saved markdown for exam {exam.id} ({len(exercises)} exercises)")

    def get_exam_markdown(self, exam_id: str) -> Optional[str]:
        """Return the cached export, or None."""
        return self._store.get_item(markdown_key(exam_id))

    def write_markdown_file(self, exam_id: str, output_path: Path) -> Optional[Path]:
        """
        Write the cached export to a file.

        Args:
            exam_id: Exam whose export to write
            output_path: Target file (".md" appended if missing)

        Returns:
            Path written, or None if no export is cached
        """
        markdown = self.get_exam_markdown(exam_id)
        if markdown is None:
            return None

        output_path = Path(output_path)
        if output_path.suffix != ".md":
            output_path = output_path.with_suffix(".md")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(markdown, encoding="utf-8")

        logger.info(f"Wrote markdown export to {output_path}")
        return output_path
