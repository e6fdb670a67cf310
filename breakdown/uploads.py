"""
Upload Storage

Temporary storage for files received with a request. Names combine a
millisecond timestamp with a random token so concurrent requests can share
one directory without locking.
"""

import asyncio
import re
import shutil
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

import structlog

from .models import UploadedFile

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def safe_filename(name: str) -> str:
    """Strip directory parts and unusual characters from a client file name."""
    base = Path(name or "upload").name
    cleaned = _UNSAFE_CHARS.sub('_', base).strip('._')
    return cleaned[:120] or "upload"


class UploadStore:
    """Owns the uploads directory namespace."""

    def __init__(self, upload_dir: str):
        self.upload_dir = Path(upload_dir)

    def _unique_path(self, original_name: str) -> Path:
        stamp = int(time.time() * 1000)
        token = uuid.uuid4().hex[:12]
        return self.upload_dir / f"{stamp}-{token}-{safe_filename(original_name)}"

    def save_stream(
        self,
        original_name: str,
        stream: BinaryIO,
        mime_hint: Optional[str] = None,
    ) -> UploadedFile:
        """Copy a readable binary stream into storage."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self._unique_path(original_name)
        with open(path, 'wb') as out:
            shutil.copyfileobj(stream, out)

        return UploadedFile(
            original_name=original_name,
            storage_path=str(path),
            size_bytes=path.stat().st_size,
            mime_hint=mime_hint,
        )

    async def save_upload(self, upload) -> UploadedFile:
        """Store a FastAPI/Starlette ``UploadFile``."""
        await upload.seek(0)
        return await asyncio.to_thread(
            self.save_stream,
            upload.filename or "upload",
            upload.file,
            upload.content_type,
        )

    def import_file(self, source: str) -> UploadedFile:
        """Copy a local file into storage so cleanup never touches the original."""
        source_path = Path(source)
        with open(source_path, 'rb') as f:
            return self.save_stream(source_path.name, f)

    def discard(self, files: Iterable[UploadedFile]) -> None:
        discard_files(files)


def discard_files(files: Iterable[UploadedFile]) -> None:
    """Delete stored files, ignoring ones already gone."""
    for uploaded in files:
        try:
            Path(uploaded.storage_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("upload_cleanup_failed", path=uploaded.storage_path, error=str(e))
