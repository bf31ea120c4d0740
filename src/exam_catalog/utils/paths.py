"""
Path utilities for locating the catalog's data directory.

Dev mode: Uses local workspace/ directory
Installed: Uses the system-standard per-user data location
"""
from __future__ import annotations

import os
import platform
import sys
from pathlib import Path

APP_DIR_NAME = "Exam Catalog"


def is_dev_checkout() -> bool:
    """Check if running from a source checkout (pyproject.toml beside src/)."""
    root = Path(__file__).resolve().parents[3]
    return (root / "pyproject.toml").exists() and (root / "src").is_dir()


def get_app_data_dir() -> Path:
    """
    Get the application data directory for the catalog store.

    Windows: %LOCALAPPDATA%/Exam Catalog
    macOS:   ~/Library/Application Support/Exam Catalog
    Linux:   $XDG_DATA_HOME/Exam Catalog (default ~/.local/share)
    Dev:     workspace/
    """
    if is_dev_checkout() and not getattr(sys, "frozen", False):
        return Path.cwd() / "workspace"

    system = platform.system()
    if system == "Windows":
        base = os.environ.get("LOCALAPPDATA", os.environ.get("APPDATA"))
        return Path(base) / APP_DIR_NAME if base else Path.home() / ".exam_catalog"
    if system == "Darwin":
        return Path.home() / "Library/Application Support" / APP_DIR_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local/share"
    return base / APP_DIR_NAME


def get_store_path(data_dir: Path, filename: str = "catalog.json") -> Path:
    """Get the path of the JSON store inside data_dir."""
    return Path(data_dir) / filename
