"""
Module: errors

Purpose:
    Exception hierarchy shared by the storage layer and its callers.

Key Classes:
    - CatalogError: Base for every catalog failure
    - StorageError: The key-value medium could not be read or written
    - SaveFailedError: Generic "save failed" raised by the repository
    - ImageSaveError / MarkdownSaveError: Specialised save failures

Used By:
    - storage: Wraps OS and decode failures in StorageError
    - services: Re-raises persistence failures as SaveFailedError
    - cli: Maps failures to a generic retry message

Note:
    Lookups that find nothing return None; they never raise.
"""


class CatalogError(Exception):
    """Base class for exam catalog errors."""


class StorageError(CatalogError):
    """Raised when the underlying key-value medium fails."""


class SaveFailedError(CatalogError):
    """Raised when a record could not be persisted.

    The original failure is chained as ``__cause__`` and logged where it
    happened; callers only need to show a generic retry message.
    """


class ImageSaveError(SaveFailedError):
    """Raised when an uploaded image could not be read or stored."""


class MarkdownSaveError(SaveFailedError):
    """Raised when the markdown export could not be stored."""
