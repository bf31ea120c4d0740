"""
Storage Package

Text-only key-value stores injected into the catalog services.
"""

from .base import KeyValueStore
from .file_store import JsonFileStore
from .memory import InMemoryStore

__all__ = ["KeyValueStore", "InMemoryStore", "JsonFileStore"]
