"""
CareComply File Storage — Local binary storage for uploaded evidence.

Physical layout:
    {storage_root}/{client_id}/{YYYYmmdd_HHMMSS}_{safe_name}

Only the relative path (``storage_ref``) is kept on the Document record.
"""

from __future__ import annotations

import hashlib
import logging
import mimetypes
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Tuple

logger = logging.getLogger("carecomply.documents.storage")


class FileStorage:
    """Writes, resolves and removes stored evidence files."""

    def __init__(self, storage_root: str):
        self._root = Path(storage_root)

    @property
    def root(self) -> Path:
        return self._root

    def save(self, client_id: str, file_name: str, file_data: BinaryIO) -> Tuple[str, int]:
        """
        Stream *file_data* to disk in 8 KB chunks.

        Returns (storage_ref, bytes_written).
        """
        now = datetime.now(timezone.utc)
        safe_client = self._safe_filename(client_id)
        unique_name = f"{now.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}_{self._safe_filename(file_name)}"
        relative_path = f"{safe_client}/{unique_name}"

        physical_path = self._root / relative_path
        physical_path.parent.mkdir(parents=True, exist_ok=True)

        bytes_written = 0
        file_hash = hashlib.sha256()
        with open(physical_path, "wb") as f:
            while True:
                chunk = file_data.read(8192)
                if not chunk:
                    break
                f.write(chunk)
                file_hash.update(chunk)
                bytes_written += len(chunk)

        logger.info(
            f"Stored: {relative_path} ({bytes_written} bytes, "
            f"sha256={file_hash.hexdigest()[:12]})"
        )
        return relative_path, bytes_written

    def path_for(self, storage_ref: str) -> Path:
        return self._root / storage_ref

    def exists(self, storage_ref: str) -> bool:
        return self.path_for(storage_ref).exists()

    def remove(self, storage_ref: str) -> bool:
        """Delete a stored file. Returns False if it was already gone."""
        path = self.path_for(storage_ref)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Removed stored file: {storage_ref}")
        return True

    @staticmethod
    def _safe_filename(filename: str) -> str:
        """
        Sanitize a filename for safe filesystem storage.

        Removes path separators, null bytes, and leading dots.
        Preserves extension.
        """
        name = os.path.basename(filename)
        name = "".join(c for c in name if c.isprintable() and c not in '<>:"/\\|?*')
        name = name.lstrip(".")
        if not name:
            name = "unnamed_document"
        if len(name) > 200:
            base, ext = os.path.splitext(name)
            name = base[:200 - len(ext)] + ext
        return name

    @staticmethod
    def detect_mime_type(filename: str) -> str:
        """Detect MIME type from filename."""
        mime, _ = mimetypes.guess_type(filename)
        return mime or "application/octet-stream"

    def __repr__(self) -> str:
        return f"<FileStorage root='{self._root}'>"
