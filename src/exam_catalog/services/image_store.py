"""
Module: services.image_store

Purpose:
    Persist uploaded exercise images in a text-only key-value store. Image
    bytes are embedded as base64 data URLs under ``image_{path}`` where
    path is "/images/{examId}/{exerciseId}/{type}/{filename}".

Key Classes:
    - ImageUpload: An uploaded file (name + bytes, or a path on disk)
    - ImageStore: save_image / get_image / get_image_bytes

Key Functions:
    - build_image_path(): Derive the storage path for an image
    - encode_data_url() / decode_data_url(): Text-safe embedding

Dependencies:
    - PIL/Pillow: Image format detection for the data URL MIME type
    - storage.KeyValueStore

Used By:
    - services.repository: Saves images while creating exercises
    - cli: Shows stored images for an exercise
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import Optional

from PIL import Image

from exam_catalog.core.models.exercises import ImageType
from exam_catalog.errors import CatalogError, ImageSaveError
from exam_catalog.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

IMAGE_KEY_PREFIX = "image_"
DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ImageUpload:
    """
    An image file supplied by the user.

    Either ``content`` holds the bytes already, or ``source`` points at a
    file that is read when the upload is saved.

    Attributes:
        filename: Original file name (only the base name is kept)
        content: Raw bytes, if already in memory
        content_type: MIME type declared by the caller, if known
        source: Path to read the bytes from

    Example:
        >>> upload = ImageUpload.from_path(Path("diagram.png"))
        >>> upload.filename
        'diagram.png'
    """

    filename: str
    content: Optional[bytes] = None
    content_type: Optional[str] = None
    source: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.content is None and self.source is None:
            raise ValueError(f"upload {self.filename!r} needs content or a source path")

    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> ImageUpload:
        """Create an upload that reads its bytes from path when saved."""
        path = Path(path)
        return cls(filename=path.name, content_type=content_type, source=path)

    async def read(self) -> bytes:
        """
        Return the upload's bytes.

        Disk reads run in a worker thread so the event loop is not blocked.

        Raises:
            OSError: If the source file cannot be read
        """
        if self.content is not None:
            return self.content
        return await asyncio.to_thread(self.source.read_bytes)


def image_key(path: str) -> str:
    """Storage key for an image path."""
    return f"{IMAGE_KEY_PREFIX}{path}"


def build_image_path(
    exam_id: str,
    exercise_id: str,
    image_type: ImageType | str,
    filename: str,
) -> str:
    """
    Derive the storage path for an exercise image.

    Args:
        exam_id: Owning exam
        exercise_id: Owning exercise
        image_type: Slot the image illustrates
        filename: Uploaded file name; directories are stripped

    Returns:
        Path like "/images/{examId}/{exerciseId}/{type}/{filename}"

    Raises:
        ValueError: If the filename is empty or image_type is unknown

    Examples:
        >>> build_image_path("e1", "x1", "question", "fig.png")
        '/images/e1/x1/question/fig.png'
        >>> build_image_path("e1", "x1", ImageType.ANSWER, "C:\\\\scans\\\\a.jpg")
        '/images/e1/x1/answer/a.jpg'
    """
    slot = ImageType(image_type)
    name = PurePosixPath(filename.replace("\\", "/")).name
    if not name:
        raise ValueError(f"image filename is empty: {filename!r}")
    return f"/images/{exam_id}/{exercise_id}/{slot.value}/{name}"


def detect_mime_type(content: bytes, filename: str = "") -> str:
    """
    Work out the MIME type for image bytes.

    Pillow identifies the format from the bytes; the filename extension is
    the fallback for content Pillow cannot open, including images whose
    declared size trips Pillow's decompression bomb check.

    Returns:
        MIME type, or "application/octet-stream" when unknown
    """
    try:
        with Image.open(BytesIO(content)) as img:
            mime = Image.MIME.get(img.format or "")
            if mime:
                return mime
    except (OSError, ValueError, Image.DecompressionBombError):
        pass  # Not an image Pillow will open

    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_MIME_TYPE


def encode_data_url(content: bytes, mime_type: str) -> str:
    """Embed bytes as a base64 data URL."""
    payload = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """
    Split a base64 data URL into its MIME type and bytes.

    Raises:
        ValueError: If the text is not a base64 data URL
    """
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URL")
    mime_type = header[len("data:"):-len(";base64")] or DEFAULT_MIME_TYPE
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e


class ImageStore:
    """
    Saves and looks up exercise images in a KeyValueStore.

    Two uploads mapping to the same path overwrite each other silently.

    Example:
        >>> images = ImageStore(InMemoryStore())
        >>> path = asyncio.run(images.save_image("e1", "x1", "question", upload))
        >>> images.get_image(path).startswith("data:image/png;base64,")
        True
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def save_image(
        self,
        exam_id: str,
        exercise_id: str,
        image_type: ImageType | str,
        upload: ImageUpload,
    ) -> str:
        """
        Encode and store an uploaded image.

        Args:
            exam_id: Owning exam
            exercise_id: Owning exercise
            image_type: Slot the image illustrates
            upload: The uploaded file

        Returns:
            The derived storage path

        Raises:
            ImageSaveError: If reading, encoding or writing fails
        """
        try:
            path = build_image_path(exam_id, exercise_id, image_type, upload.filename)
            content = await upload.read()
            mime_type = upload.content_type or detect_mime_type(content, upload.filename)
            self._store.set_item(image_key(path), encode_data_url(content, mime_type))
        except (OSError, ValueError, TypeError, CatalogError) as e:
            logger.error(f"Failed to save image {upload.filename!r}: {e}")
            raise ImageSaveError("Failed to save image") from e

        logger.debug(f"Saved image {path} ({len(content)} bytes, {mime_type})")
        return path

    def get_image(self, path: str) -> Optional[str]:
        """Return the stored data URL for path, or None."""
        return self._store.get_item(image_key(path))

    def get_image_bytes(self, path: str) -> Optional[bytes]:
        """
        Return the original bytes stored for path, or None.

        Raises:
            ValueError: If the stored value is not a base64 data URL
        """
        data_url = self.get_image(path)
        if data_url is None:
            return None
        _, content = decode_data_url(data_url)
        return content
