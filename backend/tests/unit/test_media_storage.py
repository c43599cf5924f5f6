"""
Tests for media validation and the local storage adapter.
"""

from datetime import datetime

import pytest

from adapters.storage.media_storage import (
    InvalidMediaError,
    LocalStorageAdapter,
    StorageError,
    validate_upload,
)

PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00"
JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF"
GIF = b"GIF89a\x01\x00\x01\x00"
WEBP = b"RIFF\x24\x00\x00\x00WEBPVP8 "
SVG = b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg"></svg>'


class TestValidateUpload:
    """Tests for validate_upload."""

    @pytest.mark.parametrize(
        "content_type,data",
        [
            ("image/png", PNG),
            ("image/jpeg", JPEG),
            ("image/gif", GIF),
            ("image/webp", WEBP),
            ("image/svg+xml", SVG),
            ("image/svg+xml", b"  <svg></svg>"),
        ],
    )
    def test_accepts_allowed_types(self, content_type, data):
        assert validate_upload(content_type, data, max_bytes=1024) == content_type

    def test_normalizes_content_type(self):
        assert validate_upload("IMAGE/PNG; charset=binary", PNG, max_bytes=1024) == "image/png"

    @pytest.mark.parametrize("content_type", ["application/pdf", "text/html", "", None])
    def test_rejects_other_types(self, content_type):
        with pytest.raises(InvalidMediaError):
            validate_upload(content_type, PNG, max_bytes=1024)

    def test_rejects_empty_file(self):
        with pytest.raises(InvalidMediaError, match="empty"):
            validate_upload("image/png", b"", max_bytes=1024)

    def test_rejects_oversized_file(self):
        with pytest.raises(InvalidMediaError, match="limit"):
            validate_upload("image/png", PNG + b"\x00" * 100, max_bytes=20)

    def test_rejects_mismatched_content(self):
        with pytest.raises(InvalidMediaError, match="does not match"):
            validate_upload("image/png", JPEG, max_bytes=1024)


class TestLocalStorageAdapter:
    """Tests for LocalStorageAdapter."""

    @pytest.fixture
    def adapter(self, tmp_path):
        return LocalStorageAdapter(base_path=str(tmp_path / "uploads"))

    @pytest.mark.asyncio
    async def test_save_organizes_by_user_and_month(self, adapter):
        now = datetime.now()
        path = await adapter.save(PNG, "photo.png", "user-1", "image/png")

        assert path.startswith(f"media/user-1/{now.year}/{now.month:02d}/photo_")
        assert path.endswith(".png")
        assert (adapter.base_path / path).read_bytes() == PNG

    @pytest.mark.asyncio
    async def test_save_sanitizes_filename(self, adapter):
        path = await adapter.save(PNG, "../../etc/pass wd.exe", "user-1", "image/png")

        assert ".." not in path
        assert "/etc/" not in path
        assert path.rsplit("/", 1)[1].startswith("pass_wd_")
        assert path.endswith(".png")

    @pytest.mark.asyncio
    async def test_save_adds_timestamp(self, adapter):
        first = await adapter.save(PNG, "a.png", "user-1", "image/png")
        second = await adapter.save(PNG, "a.png", "user-1", "image/png")
        assert first != second

    @pytest.mark.asyncio
    async def test_delete(self, adapter):
        path = await adapter.save(GIF, "a.gif", "user-1", "image/gif")

        assert await adapter.delete(path) is True
        assert not (adapter.base_path / path).exists()
        assert await adapter.delete(path) is False

    @pytest.mark.asyncio
    async def test_delete_outside_root_rejected(self, adapter):
        with pytest.raises(StorageError):
            await adapter.delete("../../outside.png")

    def test_public_url(self, adapter):
        assert adapter.public_url("media/u/2024/01/a.png") == "/uploads/media/u/2024/01/a.png"
