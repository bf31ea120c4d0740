"""
Unit tests for image_store.py.
"""

import asyncio
import struct
import zlib
from pathlib import Path

import pytest

from exam_catalog.errors import ImageSaveError, StorageError
from exam_catalog.services.image_store import (
    ImageStore,
    ImageUpload,
    build_image_path,
    decode_data_url,
    detect_mime_type,
    encode_data_url,
)
from exam_catalog.storage.memory import InMemoryStore


class FailingStore(InMemoryStore):
    """Store whose writes always fail."""

    def set_item(self, key, value):
        raise StorageError("quota exceeded")


def png_header(width: int, height: int) -> bytes:
    """PNG signature, IHDR declaring width x height and an empty IDAT."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"")


class TestBuildImagePath:
    """Tests for path derivation."""

    def test_build_when_slot_given_then_formats_path(self):
        assert build_image_path("e1", "x1", "question", "fig.png") == "/images/e1/x1/question/fig.png"

    def test_build_when_filename_has_directories_then_keeps_base_name(self):
        assert build_image_path("e1", "x1", "answer", "scans/2024/a.jpg") == "/images/e1/x1/answer/a.jpg"
        assert build_image_path("e1", "x1", "answer", "C:\\scans\\a.jpg") == "/images/e1/x1/answer/a.jpg"

    def test_build_when_filename_empty_then_raises_error(self):
        with pytest.raises(ValueError, match="filename is empty"):
            build_image_path("e1", "x1", "statement", "")

    def test_build_when_unknown_slot_then_raises_error(self):
        with pytest.raises(ValueError):
            build_image_path("e1", "x1", "diagram", "fig.png")


class TestDataUrl:
    """Tests for text-safe encoding."""

    def test_decode_when_encoded_then_returns_original_bytes(self):
        content = bytes(range(256))

        mime, decoded = decode_data_url(encode_data_url(content, "image/png"))

        assert mime == "image/png"
        assert decoded == content

    @pytest.mark.parametrize("text", ["hello", "data:image/png,abc", "data:image/png;base64,@@@"])
    def test_decode_when_malformed_then_raises_error(self, text):
        with pytest.raises(ValueError):
            decode_data_url(text)

    def test_detect_when_png_bytes_then_png_mime(self, sample_image):
        assert detect_mime_type(sample_image.read_bytes(), "whatever.bin") == "image/png"

    def test_detect_when_not_image_then_uses_extension(self):
        assert detect_mime_type(b"<svg/>", "fig.svg") == "image/svg+xml"

    def test_detect_when_unknown_then_octet_stream(self):
        assert detect_mime_type(b"\x00\x01", "blob") == "application/octet-stream"

    def test_detect_when_declared_size_huge_then_uses_extension(self):
        """Oversized images are valid uploads; only the format sniff is skipped."""
        assert detect_mime_type(png_header(20000, 20000), "scan.png") == "image/png"


class TestImageStore:
    """Tests for ImageStore save/get."""

    def test_save_when_bytes_upload_then_stores_data_url(self, store, sample_image):
        images = ImageStore(store)
        upload = ImageUpload("fig.png", content=sample_image.read_bytes())

        path = asyncio.run(images.save_image("e1", "x1", "question", upload))

        assert path == "/images/e1/x1/question/fig.png"
        assert store.get_item(f"image_{path}").startswith("data:image/png;base64,")

    def test_save_when_path_upload_then_roundtrips_bytes(self, store, sample_image):
        """get_image_bytes should return exactly the uploaded bytes."""
        images = ImageStore(store)

        path = asyncio.run(images.save_image("e1", "x1", "answer", ImageUpload.from_path(sample_image)))

        assert images.get_image_bytes(path) == sample_image.read_bytes()

    def test_save_when_content_type_given_then_used(self, store):
        images = ImageStore(store)
        upload = ImageUpload("scan.dat", content=b"abc", content_type="image/webp")

        path = asyncio.run(images.save_image("e1", "x1", "statement", upload))

        assert images.get_image(path).startswith("data:image/webp;base64,")

    def test_save_when_declared_size_huge_then_stored(self, store):
        images = ImageStore(store)
        content = png_header(20000, 20000)

        path = asyncio.run(images.save_image("e1", "x1", "question", ImageUpload("scan.png", content=content)))

        assert images.get_image(path).startswith("data:image/png;base64,")
        assert images.get_image_bytes(path) == content

    def test_save_when_same_path_then_overwrites(self, store):
        images = ImageStore(store)
        first = ImageUpload("fig.png", content=b"first")
        second = ImageUpload("fig.png", content=b"second")

        asyncio.run(images.save_image("e1", "x1", "question", first))
        path = asyncio.run(images.save_image("e1", "x1", "question", second))

        assert images.get_image_bytes(path) == b"second"

    def test_save_when_source_missing_then_raises_image_save_error(self, store, tmp_path):
        images = ImageStore(store)
        upload = ImageUpload.from_path(tmp_path / "missing.png")

        with pytest.raises(ImageSaveError, match="Failed to save image") as exc_info:
            asyncio.run(images.save_image("e1", "x1", "question", upload))

        assert isinstance(exc_info.value.__cause__, OSError)
        assert store.keys() == []

    def test_save_when_store_fails_then_raises_image_save_error(self):
        images = ImageStore(FailingStore())

        with pytest.raises(ImageSaveError) as exc_info:
            asyncio.run(images.save_image("e1", "x1", "question", ImageUpload("a.png", content=b"x")))

        assert isinstance(exc_info.value.__cause__, StorageError)

    def test_get_when_absent_then_none(self, store):
        images = ImageStore(store)

        assert images.get_image("/images/e1/x1/question/none.png") is None
        assert images.get_image_bytes("/images/e1/x1/question/none.png") is None


class TestImageUpload:
    """Tests for ImageUpload construction."""

    def test_init_when_no_content_or_source_then_raises_error(self):
        with pytest.raises(ValueError, match="needs content or a source"):
            ImageUpload("fig.png")

    def test_from_path_when_called_then_uses_file_name(self, tmp_path):
        upload = ImageUpload.from_path(tmp_path / "dir" / "fig.png")

        assert upload.filename == "fig.png"
        assert upload.content is None
