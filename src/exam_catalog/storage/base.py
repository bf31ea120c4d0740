"""
Module: storage.base

Purpose:
    Defines the KeyValueStore port the repository and services write
    through. Every value is text; binary content must be encoded first.

Key Classes:
    - KeyValueStore: Abstract text-only key-value store

Used By:
    - services.repository: exams/exercises collections
    - services.image_store: image_{path} entries
    - services.markdown_exporter: markdown_{examId} entries
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional


class KeyValueStore(ABC):
    """
    Text-only key-value store.

    Implementations must return ``None`` for absent keys and reject
    non-string values with ``TypeError``. Writes overwrite silently.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get_item(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    @staticmethod
    def _check_value(key: str, value: object) -> None:
        if not isinstance(value, str):
            raise TypeError(
                f"Value for {key!r} must be str, got {type(value).__name__}"
            )
