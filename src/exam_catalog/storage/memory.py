"""
In-memory key-value store.

Backs unit tests and throwaway sessions; nothing survives the process.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .base import KeyValueStore

logger = logging.getLogger(__name__)


class InMemoryStore(KeyValueStore):
    """Dict-backed KeyValueStore."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set_item(key, value)

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_value(key, value)
        self._data[key] = value
        logger.debug(f"Stored {key} ({len(value)} chars)")

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)
