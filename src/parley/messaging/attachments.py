"""Attachment validation and staging on local disk.

Controllers only record the descriptor returned by
:meth:`AttachmentStore.stage_all`; it never handles file bytes itself.
Files are served back by the app under ``url_prefix``.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePath

from parley.messaging.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
    }
)
IMAGE_MIME_TYPES: frozenset[str] = ALLOWED_MIME_TYPES - {"application/pdf"}
MAX_ATTACHMENT_BYTES: int = 5 * 1024 * 1024


@dataclass(frozen=True)
class IncomingFile:
    """An uploaded file as received by the request layer."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class AttachmentStore:
    """Validates uploads and writes them under *upload_dir*.

    Parameters
    ----------
    upload_dir:
        Directory files are written to; created on first use.
    url_prefix:
        Public path the directory is mounted at.
    max_bytes:
        Per-file size cap.
    name_prefix:
        Leading segment of stored file names, e.g. ``message`` or ``item``.
    """

    def __init__(
        self,
        upload_dir: str | Path,
        url_prefix: str = "/uploads",
        max_bytes: int = MAX_ATTACHMENT_BYTES,
        allowed_types: frozenset[str] = ALLOWED_MIME_TYPES,
        name_prefix: str = "message",
        type_error: str = "Invalid file type. Only images and PDFs are allowed",
    ) -> None:
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_types = allowed_types
        self.name_prefix = name_prefix
        self.type_error = type_error

    def validate(self, file: IncomingFile) -> None:
        """Raise :class:`ValidationError` if *file* may not be attached."""
        if file.content_type not in self.allowed_types:
            raise ValidationError(self.type_error)
        if file.size > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            raise ValidationError(
                f"File size too large. Maximum size is {limit_mb}MB per file"
            )

    async def stage_all(self, files: list[IncomingFile], owner_id: str) -> list[dict]:
        """Validate every file, then write them all.

        Nothing is written unless every file passes validation.  If a
        write fails, files already written by this call are removed.
        """
        for file in files:
            self.validate(file)

        staged: list[dict] = []
        try:
            for file in files:
                staged.append(await self._write(file, owner_id))
        except Exception:
            await self.discard(staged)
            raise
        return staged

    async def discard(self, descriptors: list[dict]) -> None:
        """Remove stored files, e.g. when the owning write fails or the owner drops them."""
        for descriptor in descriptors:
            path = self.upload_dir / descriptor["filename"]
            await asyncio.to_thread(path.unlink, missing_ok=True)
            logger.debug("Discarded staged attachment %s", descriptor["filename"])

    async def _write(self, file: IncomingFile, owner_id: str) -> dict:
        extension = PurePath(file.filename).suffix
        stored_name = (
            f"{self.name_prefix}-{owner_id}-{int(time.time() * 1000)}-{secrets.token_hex(3)}{extension}"
        )
        await asyncio.to_thread(self.upload_dir.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread((self.upload_dir / stored_name).write_bytes, file.data)
        logger.info("Attachment staged: %s (%d bytes)", stored_name, file.size)
        return {
            "url": f"{self.url_prefix}/{stored_name}",
            "filename": stored_name,
            "originalName": file.filename,
            "size": file.size,
            "mimetype": file.content_type,
        }
