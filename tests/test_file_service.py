"""
Cemetery Records Service: File Service Unit Tests
==================================================

What:  Tests for FileService validation (extension, size, MIME type), the
       storage layout, path resolution and best-effort cleanup.
Why:   Uploads are the only place untrusted bytes reach the disk.
How:   Each test gets a FileService rooted in a temporary directory. libmagic
       is replaced through sys.modules so MIME tests do not depend on the
       system library being installed.

Test Strategy:
    ✅ Allowed / rejected extensions
    ✅ Size limits, including empty uploads
    ✅ MIME detection result handling and detector failure
    ✅ Relative paths under <category>/YYYY/MM/DD/
    ✅ Path escape rejection
    ✅ Cleanup never raises
"""

import sys
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from cemetery.config import settings
from cemetery.exceptions import FileStorageError, ValidationError
from cemetery.services.file_service import (
    CATEGORY_GRAVES,
    CATEGORY_INSTRUCTIONS,
    FileService,
)


def fake_magic(mime: str):
    return patch.dict(sys.modules, {"magic": SimpleNamespace(from_buffer=lambda *_a, **_k: mime)})


class TestFileValidation:
    """Tests for file validation logic in FileService."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(storage_root=temp_storage)

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "photo.jpeg", "photo.png", "photo.webp"])
    def test_allowed_extensions(self, filename):
        assert self.service.validate_extension(filename).startswith(".")

    def test_extension_is_case_insensitive(self):
        assert self.service.validate_extension("HEADSTONE.JPG") == ".jpg"
        assert self.service.validate_extension("Plot.Png") == ".png"

    @pytest.mark.parametrize("filename", ["animation.gif", "scan.pdf", "noextension", "setup.exe", ""])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            self.service.validate_extension(filename)
        assert exc_info.value.field == "file"

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_size_at_exact_limit(self):
        """The limit itself is allowed; one byte more is not."""
        self.service.validate_size(None, settings.max_file_size)
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(None, settings.max_file_size + 1)

    def test_declared_content_length_checked_first(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(settings.max_file_size * 2, 10)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(None, 0)

    # ── MIME Validation ───────────────────────────────────────────────────

    def test_mime_type_accepted(self, sample_image_bytes):
        with fake_magic("image/jpeg"):
            assert self.service.validate_mime_type(sample_image_bytes, "a.jpg") == "image/jpeg"

    def test_renamed_non_image_rejected(self):
        """A text file renamed to .png must not pass."""
        with fake_magic("text/plain"):
            with pytest.raises(ValidationError, match="not supported"):
                self.service.validate_mime_type(b"hello", "fake.png")

    def test_detector_failure_is_storage_error(self):
        def boom(*_a, **_k):
            raise RuntimeError("libmagic exploded")

        with patch.dict(sys.modules, {"magic": SimpleNamespace(from_buffer=boom)}):
            with pytest.raises(FileStorageError):
                self.service.validate_mime_type(b"\x00", "a.png")


class TestFileStorage:
    """Storage layout, resolution and cleanup."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.root = temp_storage
        self.service = FileService(storage_root=temp_storage)

    def test_storage_path_layout(self):
        absolute, relative = self.service._generate_storage_path(CATEGORY_GRAVES, ".jpg")
        parts = relative.split("/")
        assert parts[0] == "graves"
        assert len(parts) == 5  # graves/YYYY/MM/DD/<uuid>.jpg
        assert parts[-1].endswith(".jpg")
        assert str(absolute).startswith(str(self.service.storage_root))

    def test_paths_are_unique(self):
        _, first = self.service._generate_storage_path(CATEGORY_GRAVES, ".png")
        _, second = self.service._generate_storage_path(CATEGORY_GRAVES, ".png")
        assert first != second

    def test_public_url(self):
        assert FileService.public_url("graves/2026/10/17/x.jpg") == "/api/files/graves/2026/10/17/x.jpg"

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_bytes(self, sample_image_bytes):
        with patch.object(self.service, "validate_mime_type", return_value="image/jpeg"):
            relative = await self.service.validate_and_store(
                "photo.JPG", sample_image_bytes, CATEGORY_INSTRUCTIONS
            )

        assert relative.startswith("instructions/")
        assert relative.endswith(".jpg")
        assert self.service.resolve(relative).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_validate_and_store_rejects_before_writing(self):
        with pytest.raises(ValidationError):
            await self.service.validate_and_store("notes.txt", b"abc", CATEGORY_GRAVES)
        assert not any(self.service.storage_root.rglob("*.txt"))

    @pytest.mark.parametrize("path", ["../outside.jpg", "graves/../../etc/passwd"])
    def test_resolve_rejects_escape(self, path):
        with pytest.raises(ValidationError, match="Invalid file path"):
            self.service.resolve(path)

    @pytest.mark.asyncio
    async def test_cleanup_removes_file(self, sample_image_bytes):
        relative = await self.service.store_file(sample_image_bytes, ".jpg", CATEGORY_GRAVES)
        await self.service.cleanup_file(relative)
        assert not self.service.resolve(relative).exists()

    @pytest.mark.asyncio
    async def test_cleanup_is_best_effort(self):
        """Missing files, None and escaping paths are all ignored."""
        await self.service.cleanup_file(None)
        await self.service.cleanup_file("graves/2026/01/01/missing.jpg")
        await self.service.cleanup_file("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_cleanup_swallows_os_errors(self, sample_image_bytes):
        relative = await self.service.store_file(sample_image_bytes, ".jpg", CATEGORY_GRAVES)
        with patch("cemetery.services.file_service.os.remove", side_effect=PermissionError("denied")):
            await self.service.cleanup_file(relative)
        assert self.service.resolve(relative).exists()
