"""Command line front end for the exam catalog.

Validates input, calls the repository and prints the results. Lookups that
find nothing are reported and exit with status 1; invalid input exits with
status 2.

Usage:
    exam-catalog list
    exam-catalog add-exam --subject Math --school-year 2023-2024 --exam-year 2024
    exam-catalog show-exam EXAM_ID
    exam-catalog add-exercise EXAM_ID --topic Algebra --subtopic Equations \\
        --difficulty Easy --question "Solve x+1=2" --answer "x=1"
    exam-catalog show-exercise EXAM_ID EXERCISE_ID
    exam-catalog markdown EXAM_ID [--output exam.md]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from exam_catalog import __version__
from exam_catalog.config import CatalogConfig, configure_logging
from exam_catalog.core.models.exams import CreateExamInput, Exam
from exam_catalog.core.models.exercises import CreateExerciseInput, DifficultyLevel, Exercise
from exam_catalog.core.schemas.validator import (
    ValidationError,
    validate_exam_input,
    validate_exercise_input,
)
from exam_catalog.errors import CatalogError, StorageError
from exam_catalog.services.image_store import ImageUpload, decode_data_url
from exam_catalog.services.markdown_exporter import format_created_date
from exam_catalog.services.repository import ExamRepository
from exam_catalog.storage.file_store import JsonFileStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exam-catalog",
        description="Catalog exams and their exercises.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", type=Path, help="Directory holding catalog.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List exams")

    add_exam = sub.add_parser("add-exam", help="Create an exam")
    add_exam.add_argument("--subject", required=True)
    add_exam.add_argument("--school-year", required=True, help="Format YYYY-YYYY")
    add_exam.add_argument("--exam-year", required=True, type=int)

    show_exam = sub.add_parser("show-exam", help="Show an exam and its exercises")
    show_exam.add_argument("exam_id")

    add_ex = sub.add_parser("add-exercise", help="Add an exercise to an exam")
    add_ex.add_argument("exam_id")
    add_ex.add_argument("--topic", required=True)
    add_ex.add_argument("--subtopic", required=True)
    add_ex.add_argument(
        "--difficulty",
        default=DifficultyLevel.EASY.value,
        choices=[level.value for level in DifficultyLevel],
    )
    add_ex.add_argument("--statement")
    add_ex.add_argument("--question", required=True)
    add_ex.add_argument("--answer", required=True)
    add_ex.add_argument("--multiple-choice", action="store_true")
    add_ex.add_argument("--correct-answer")
    add_ex.add_argument("--statement-image", type=Path)
    add_ex.add_argument("--question-image", type=Path)
    add_ex.add_argument("--answer-image", type=Path)

    show_ex = sub.add_parser("show-exercise", help="Show one exercise")
    show_ex.add_argument("exam_id")
    show_ex.add_argument("exercise_id")
    show_ex.add_argument(
        "--save-images", type=Path, metavar="DIR",
        help="Write the exercise's images into DIR",
    )

    md = sub.add_parser("markdown", help="Print an exam's markdown export")
    md.add_argument("exam_id")
    md.add_argument("--output", "-o", type=Path, help="Write to a .md file instead")

    return parser


# ─────────────────────────────────────────────────────────────────────────────
# Formatting
# ─────────────────────────────────────────────────────────────────────────────

def format_exam_line(exam: Exam) -> str:
    return (
        f"{exam.id}  {exam.subject} ({exam.exam_year})  "
        f"School Year: {exam.school_year}  Created: {format_created_date(exam.created_at)}"
    )


def format_exercise_line(exercise: Exercise) -> str:
    kind = "Multiple choice" if exercise.is_multiple_choice else "Open"
    return (
        f"  {exercise.order_number}. {exercise.topic} / {exercise.subtopic}  "
        f"[{exercise.difficulty_level.value}, {kind}]  {exercise.id}"
    )


def format_exercise_detail(exam: Exam, exercise: Exercise) -> str:
    lines = [
        f"{exam.subject} Exam ({exam.exam_year}) - Exercise {exercise.order_number}",
        f"Topic: {exercise.topic}",
        f"Subtopic: {exercise.subtopic}",
        f"Difficulty: {exercise.difficulty_level.value}",
    ]
    if exercise.statement:
        lines += ["", "Statement:", exercise.statement]
    lines += ["", "Question:", exercise.question]
    if exercise.is_multiple_choice:
        lines.append(f"Correct Answer: {exercise.correct_answer or ''}")
    lines += ["", "Answer:", exercise.answer]
    if exercise.images:
        lines += ["", "Images:"]
        lines += [f"- {image.type.value}: {image.path}" for image in exercise.images]
    return "\n".join(lines)


def print_validation_errors(error: ValidationError, err: TextIO) -> None:
    for field_name, message in error.errors.items():
        print(f"{field_name}: {message}", file=err)


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────

def cmd_list(repo: ExamRepository, args: argparse.Namespace, out: TextIO, err: TextIO) -> int:
    exams = repo.get_exams()
    if not exams:
        print("No exams yet. Create one with 'add-exam'.", file=out)
        return EXIT_OK
    for exam in exams:
        print(format_exam_line(exam), file=out)
    return EXIT_OK


def cmd_add_exam(repo: ExamRepository, args: argparse.Namespace, out: TextIO, err: TextIO) -> int:
    data = CreateExamInput(
        subject=args.subject.strip(),
        school_year=args.school_year.strip(),
        exam_year=args.exam_year,
    )
    try:
        validate_exam_input(data)
    except ValidationError as e:
        print_validation_errors(e, err)
        return EXIT_INVALID

    exam = repo.create_exam(data)
    print(exam.id, file=out)
    return EXIT_OK


def cmd_show_exam(repo: ExamRepository, args: argparse.Namespace, out: TextIO, err: TextIO) -> int:
    exam = repo.get_exam_by_id(args.exam_id)
    if exam is None:
        print(f"Exam not found: {args.exam_id}", file=err)
        return EXIT_FAILED

    print(format_exam_line(exam), file=out)
    exercises = repo.get_exercises_by_exam_id(exam.id)
    if not exercises:
        print("  No exercises yet.", file=out)
    for exercise in exercises:
        print(format_exercise_line(exercise), file=out)
    return EXIT_OK


def cmd_add_exercise(repo: ExamRepository, args: argparse.Namespace, out: TextIO, err: TextIO) -> int:
    if repo.get_exam_by_id(args.exam_id) is None:
        print(f"Exam not found: {args.exam_id}", file=err)
        return EXIT_FAILED

    data = CreateExerciseInput(
        topic=args.topic.strip(),
        subtopic=args.subtopic.strip(),
        difficulty_level=DifficultyLevel(args.difficulty),
        question=args.question.strip(),
        answer=args.answer.strip(),
        is_multiple_choice=args.multiple_choice,
        correct_answer=args.correct_answer.strip() if args.multiple_choice and args.correct_answer else None,
        statement=args.statement.strip() if args.statement and args.statement.strip() else None,
    )
    try:
        validate_exercise_input(data)
    except ValidationError as e:
        print_validation_errors(e, err)
        return EXIT_INVALID

    images = {
        "statement": ImageUpload.from_path(args.statement_image) if args.statement_image else None,
        "question": ImageUpload.from_path(args.question_image) if args.question_image else None,
        "answer": ImageUpload.from_path(args.answer_image) if args.answer_image else None,
    }
    exercise = asyncio.run(repo.create_exercise(args.exam_id, data, images))
    print(exercise.id, file=out)
    return EXIT_OK


def cmd_show_exercise(repo: ExamRepository, args: argparse.Namespace, out: TextIO, err: TextIO) -> int:
    exam = repo.get_exam_by_id(args.exam_id)
    if exam is None:
        print(f"Exam not found: {args.exam_id}", file=err)
        return EXIT_FAILED

    exercise = next(
        (ex for ex in repo.get_exercises_by_exam_id(exam.id) if ex.id == args.exercise_id),
        None,
    )
    if exercise is None:
        print(f"Exercise not found in exam {exam.id}: {args.exercise_id}", file=err)
        return EXIT_FAILED

    print(format_exercise_detail(exam, exercise), file=out)

    if args.save_images:
        save_exercise_images(repo, exercise, args.save_images, out)
    return EXIT_OK


def save_exercise_images(repo: ExamRepository, exercise: Exercise, directory: Path, out: TextIO) -> None:
    """
    Write an exercise's stored images into directory as ``{slot}_{filename}``.

    Images missing from the store or holding unreadable data are skipped
    with a warning.

    Raises:
        StorageError: If directory or a file in it cannot be written
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to create {directory}") from e

    for image in exercise.images:
        data_url = repo.images.get_image(image.path)
        if data_url is None:
            logger.warning(f"Image missing from store: {image.path}")
            continue
        try:
            _, content = decode_data_url(data_url)
        except ValueError as e:
            logger.warning(f"Image data unreadable: {image.path}: {e}")
            continue

        target = directory / f"{image.type.value}_{Path(image.path).name}"
        try:
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to write {target}") from e
        print(f"Saved {target}", file=out)


def cmd_markdown(repo: ExamRepository, args: argparse.Namespace, out: TextIO, err: TextIO) -> int:
    if args.output:
        written = repo.exporter.write_markdown_file(args.exam_id, args.output)
        if written is None:
            print(f"No markdown export for exam: {args.exam_id}", file=err)
            return EXIT_FAILED
        print(f"Wrote {written}", file=out)
        return EXIT_OK

    markdown = repo.exporter.get_exam_markdown(args.exam_id)
    if markdown is None:
        print(f"No markdown export for exam: {args.exam_id}", file=err)
        return EXIT_FAILED
    out.write(markdown)
    return EXIT_OK


COMMANDS = {
    "list": cmd_list,
    "add-exam": cmd_add_exam,
    "show-exam": cmd_show_exam,
    "add-exercise": cmd_add_exercise,
    "show-exercise": cmd_show_exercise,
    "markdown": cmd_markdown,
}


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    repo: Optional[ExamRepository] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> int:
    """Run the CLI and return the exit status."""
    out = out or sys.stdout
    err = err or sys.stderr
    args = build_parser().parse_args(argv)

    config = CatalogConfig.from_env(
        data_dir=args.data_dir,
        log_level="DEBUG" if args.verbose else None,
    )
    configure_logging(config.log_level)

    if repo is None:
        repo = ExamRepository(JsonFileStore(config.store_path))
        logger.debug(f"Using store {config.store_path}")

    try:
        return COMMANDS[args.command](repo, args, out, err)
    except (CatalogError, ValidationError) as e:
        logger.debug(f"{args.command} failed", exc_info=e)
        print(f"Something went wrong: {e}. Please try again.", file=err)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
