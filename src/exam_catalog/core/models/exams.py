"""
Module: exams

Purpose:
    Provides the Exam dataclass and the CreateExamInput accepted by the
    repository. Exams are created once and never mutated.

Key Functions:
    - Exam.to_dict() / Exam.from_dict(): Serialization in stored JSON shape
    - CreateExamInput: Caller-supplied exam fields

Dependencies:
    - dataclasses (std)
    - datetime (std)

Used By:
    - core.utils.serialization
    - services.repository
    - services.markdown_exporter
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class CreateExamInput:
    """
    Fields a caller supplies to create an exam.

    Not validated on construction; see ``validate_exam_input``.

    Attributes:
        subject: Subject name like "Math"
        school_year: School year in "YYYY-YYYY" form
        exam_year: Calendar year the exam was sat
    """

    subject: str
    school_year: str
    exam_year: int


@dataclass(frozen=True)
class Exam:
    """
    Stored exam record (immutable).

    Attributes:
        id: Opaque unique identifier generated at creation
        subject: Subject name
        school_year: School year like "2023-2024"
        exam_year: Exam year like 2024
        created_at: Creation timestamp (UTC)
        updated_at: Equal to created_at; no update path exists

    Example:
        >>> exam = Exam(
        ...     id="3f1c...",
        ...     subject="Math",
        ...     school_year="2023-2024",
        ...     exam_year=2024,
        ...     created_at=now,
        ...     updated_at=now,
        ... )
    """

    id: str
    subject: str
    school_year: str
    exam_year: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(cls, exam_id: str, data: CreateExamInput, now: datetime) -> Exam:
        """Build a new exam from caller input with both timestamps set to now."""
        return cls(
            id=exam_id,
            subject=data.subject,
            school_year=data.school_year,
            exam_year=data.exam_year,
            created_at=now,
            updated_at=now,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """
        Serialize to dictionary for JSON storage.

        Timestamps are written as ISO-8601 strings.

        Returns:
            Dict with camelCase keys
        """
        return {
            "id": self.id,
            "subject": self.subject,
            "schoolYear": self.school_year,
            "examYear": self.exam_year,
            "createdAt": _format_timestamp(self.created_at),
            "updatedAt": _format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Exam:
        """
        Deserialize from dictionary.

        Args:
            data: Dict representation as written by to_dict()

        Returns:
            Exam instance
        """
        created_at = _parse_timestamp(data["createdAt"])
        return cls(
            id=data["id"],
            subject=data["subject"],
            school_year=data["schoolYear"],
            exam_year=int(data["examYear"]),
            created_at=created_at,
            updated_at=_parse_timestamp(data.get("updatedAt", data["createdAt"])),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return f"Exam({self.id!r}, subject={self.subject!r}, year={self.exam_year})"


def _format_timestamp(value: datetime) -> str:
    return value.isoformat()


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    # UTC designator "Z" is not accepted by fromisoformat before 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
