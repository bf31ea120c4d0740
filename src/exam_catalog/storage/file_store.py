"""
Module: storage.file_store

Purpose:
    File-backed key-value store. The whole store is one JSON object on
    disk; writes are read-modify-write cycles under an exclusive lock so
    two processes sharing a catalog never interleave partial writes.
    Uses portalocker for Mac, Windows, and Linux compatibility.

Key Classes:
    - JsonFileStore: KeyValueStore persisted to a JSON file

Key Functions:
    - locked_file: Context manager holding a portalocker lock on an open file
    - read_document: Shared-lock read of the store document
    - update_document: Exclusive-lock read-modify-write of the store document

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - cli: Default persistent store
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, TextIO

import portalocker

from ..errors import StorageError
from .base import KeyValueStore

logger = logging.getLogger(__name__)


@contextmanager
def locked_file(path: Path, mode: str, lock_type: int) -> Iterator[TextIO]:
    """
    Open path and hold a portalocker lock until the block exits.

    Args:
        path: File to open. It must exist unless mode creates it.
        mode: Text open mode ('r' or 'r+').
        lock_type: portalocker.LOCK_SH for readers, LOCK_EX for writers.

    Example:
        >>> with locked_file(path, 'r', portalocker.LOCK_SH) as f:
        ...     content = f.read()
    """
    with open(path, mode, encoding='utf-8') as f:
        portalocker.lock(f, lock_type)
        try:
            yield f
        finally:
            portalocker.unlock(f)


def _parse_document(content: str, path: Path) -> Dict[str, str]:
    if not content.strip():
        return {}
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StorageError(f"Store file is corrupted: {path}: {e}") from e
    if not isinstance(data, dict):
        raise StorageError(f"Store file must hold a JSON object: {path}")
    return data


def read_document(path: Path) -> Dict[str, str]:
    """
    Read the store document under a shared lock.

    A missing or empty file reads as an empty document; nothing is created.

    Raises:
        StorageError: If the file cannot be read or does not hold a JSON object
    """
    try:
        with locked_file(path, 'r', portalocker.LOCK_SH) as f:
            content = f.read()
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.error(f"Failed to read {path}: {e}")
        raise StorageError(f"Failed to read {path}") from e
    return _parse_document(content, path)


def update_document(
    path: Path,
    modifier: Callable[[Dict[str, str]], None],
) -> Dict[str, str]:
    """
    Apply modifier to the store document and write it back.

    The file (and its directory) is created on first write. The exclusive
    lock is held from the read until the rewritten document is flushed.

    Args:
        path: Store file.
        modifier: Mutates the document in place.

    Returns:
        The document as written.

    Raises:
        StorageError: If the file cannot be written or does not hold a JSON object
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
        with locked_file(path, 'r+', portalocker.LOCK_EX) as f:
            data = _parse_document(f.read(), path)
            modifier(data)
            f.seek(0)
            f.truncate()
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise StorageError(f"Failed to write {path}") from e
    return data


class JsonFileStore(KeyValueStore):
    """
    KeyValueStore persisted as a single JSON object.

    Each call re-reads the file, so several stores (or processes) on the
    same path see each other's writes. Last write wins per key.

    Attributes:
        path: Location of the JSON document.

    Example:
        >>> store = JsonFileStore(Path("workspace/catalog.json"))
        >>> store.set_item("exams", "[]")
        >>> JsonFileStore(store.path).get_item("exams")
        '[]'
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get_item(self, key: str) -> Optional[str]:
        return read_document(self.path).get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_value(key, value)

        def _set(data: Dict[str, str]) -> None:
            data[key] = value

        update_document(self.path, _set)
        logger.debug(f"Stored {key} in {self.path.name} ({len(value)} chars)")

    def remove_item(self, key: str) -> None:
        update_document(self.path, lambda data: data.pop(key, None))

    def keys(self) -> list[str]:
        return list(read_document(self.path))
