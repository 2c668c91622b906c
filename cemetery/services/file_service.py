"""
Cemetery Records Service: Image Storage Service
================================================

What:  Validates, stores and removes the images attached to graves and to
       cluster instruction steps.
How:   Uploads are checked by extension, size and magic-byte MIME type, then
       written with aiofiles to STORAGE_ROOT/<category>/YYYY/MM/DD/<uuid>.<ext>.
       Rows keep the path relative to STORAGE_ROOT; clients get a URL under
       /api/files/ (see routes/files.py).
Who:   GraveService (pictures) and InstructionService (step images).

Removal is best-effort: once the owning row is gone, a file that cannot be
deleted is logged and left behind. It never fails the request.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from cemetery.config import settings
from cemetery.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

FILES_URL_PREFIX = "/api/files/"

CATEGORY_GRAVES = "graves"
CATEGORY_INSTRUCTIONS = "instructions"


class FileService:
    """
    Directory layout:
        storage/
        ├── graves/2026/10/17/<uuid>.jpg
        └── instructions/2026/10/17/<uuid>.png
    """

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized extension; raises ValidationError otherwise."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the declared Content-Length first, then the bytes actually
        received. Empty uploads are rejected as well.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Detects the real MIME type from the file header via libmagic.

        Raises:
            ValidationError: content is not an allowed image type
            FileStorageError: libmagic failed to inspect the buffer
        """
        try:
            import magic

            mime_type = magic.from_buffer(file_content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed for %s: %s", filename, str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG, JPEG or WebP)."
                ),
                field="file",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    # ── Paths & URLs ──────────────────────────────────────────────────────

    def _generate_storage_path(self, category: str, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new file in `category`."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{category}/{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            ValidationError: the path escapes STORAGE_ROOT
        """
        candidate = (self.storage_root / relative_path).resolve()
        if not candidate.is_relative_to(self.storage_root):
            raise ValidationError(
                message="Invalid file path",
                field="file_path",
                context={"path": relative_path},
            )
        return candidate

    @staticmethod
    def public_url(relative_path: str) -> str:
        return f"{FILES_URL_PREFIX}{relative_path}"

    # ── Write / Remove ────────────────────────────────────────────────────

    async def store_file(self, content: bytes, extension: str, category: str) -> str:
        """Writes validated bytes to disk and returns the relative path."""
        absolute_path, relative_path = self._generate_storage_path(category, extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def cleanup_file(self, relative_path: Optional[str]) -> None:
        """
        Removes a stored file. Best-effort: missing files are ignored and any
        other failure is logged at WARNING without raising.
        """
        if not relative_path:
            return
        try:
            path = self.resolve(relative_path)
            if path.exists():
                os.remove(path)
                logger.info("Removed stored file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except Exception as e:
            logger.warning("Failed to remove stored file %s: %s", relative_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        category: str,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full upload pipeline, cheapest checks first. Returns the relative path
        to persist on the owning row.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)
        return await self.store_file(content, ext, category)


file_service = FileService()
