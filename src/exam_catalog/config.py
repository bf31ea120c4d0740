"""
Module: config

Purpose:
    Configuration dataclass for the catalog front end. Immutable
    configuration with validation on construction.

Key Classes:
    - CatalogConfig: Where the store lives and how verbose logging is

Dependencies:
    - dataclasses (std)
    - pathlib (std)

Used By:
    - cli: Builds the store and configures logging
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from exam_catalog.utils.paths import get_app_data_dir, get_store_path

ENV_HOME = "EXAM_CATALOG_HOME"
ENV_LOG_LEVEL = "EXAM_CATALOG_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CatalogConfig:
    """
    Configuration for the exam catalog (immutable).

    Attributes:
        data_dir: Directory holding the store file
        store_filename: Name of the JSON store inside data_dir
        log_level: Root logging level name

    Example:
        >>> config = CatalogConfig(data_dir=Path("/tmp/catalog"))
        >>> config.store_path
        PosixPath('/tmp/catalog/catalog.json')
    """

    data_dir: Path = field(default_factory=get_app_data_dir)
    store_filename: str = "catalog.json"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        object.__setattr__(self, "data_dir", Path(self.data_dir))
        object.__setattr__(self, "log_level", self.log_level.upper())
        if not self.store_filename or Path(self.store_filename).name != self.store_filename:
            raise ValueError(f"store_filename must be a bare file name: {self.store_filename!r}")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}: {self.log_level!r}")

    @property
    def store_path(self) -> Path:
        return get_store_path(self.data_dir, self.store_filename)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> CatalogConfig:
        """
        Build configuration from environment variables.

        EXAM_CATALOG_HOME sets data_dir, EXAM_CATALOG_LOG_LEVEL sets
        log_level. Keyword overrides that are not None win over both.
        """
        env = os.environ if environ is None else environ
        values: dict = {}
        if env.get(ENV_HOME):
            values["data_dir"] = Path(env[ENV_HOME]).expanduser()
        if env.get(ENV_LOG_LEVEL):
            values["log_level"] = env[ENV_LOG_LEVEL]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging with the catalog's console format."""
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT)
