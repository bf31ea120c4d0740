"""
Services Package

Repository, image store and markdown exporter built on a KeyValueStore.
"""

from .image_store import ImageStore, ImageUpload
from .markdown_exporter import MarkdownExporter, render_exam_markdown
from .repository import ExamRepository

__all__ = [
    "ExamRepository",
    "ImageStore",
    "ImageUpload",
    "MarkdownExporter",
    "render_exam_markdown",
]
