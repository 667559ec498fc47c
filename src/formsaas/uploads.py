from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from formsaas.config import Settings
from formsaas.errors import StorageFailure, ValidationError
from formsaas.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"
UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(filename: str | None) -> str:
    name = Path(filename or "").name
    name = UNSAFE_NAME_CHARS.sub("_", name).strip("._")
    return name[:100] or "file"


class FileStore:
    def __init__(self, settings: Settings, files: Any) -> None:
        self._settings = settings
        self._files = files

    async def save(self, upload: Any, form_id: str | None = None) -> str:
        """Write an uploaded file and return its public ``/uploads/...`` path."""
        content = await upload.read()
        max_bytes = self._settings.upload_max_bytes
        if max_bytes is not None and len(content) > max_bytes:
            raise ValidationError("The attached file exceeds the upload size limit.")
        file_id = new_ulid()
        stored_name = f"{file_id}-{safe_file_name(upload.filename)}"
        destination = self._settings.upload_dir / stored_name
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(content)
        except OSError as exc:
            logger.exception("Upload write failed: %s", destination)
            raise StorageFailure(f"Cannot store upload {stored_name}") from exc
        self._files.create_file(
            {
                "id": file_id,
                "stored_name": stored_name,
                "form_id": form_id,
                "original_name": upload.filename or "",
                "stored_path": str(destination),
                "content_type": getattr(upload, "content_type", None) or "",
                "size": len(content),
                "created_at": now_utc(),
            }
        )
        logger.info("Upload stored: %s (%d bytes)", stored_name, len(content))
        return f"{UPLOAD_URL_PREFIX}{stored_name}"

    def resolve(self, stored_name: str) -> tuple[Path, str] | None:
        """Locate a stored upload; only files inside the upload directory are served."""
        file_meta = self._files.get_file_by_name(stored_name)
        if not file_meta:
            return None
        upload_dir = self._settings.upload_dir.resolve()
        path = Path(file_meta["stored_path"]).resolve()
        if upload_dir not in path.parents or not path.is_file():
            return None
        return path, file_meta.get("original_name") or stored_name

    def discard(self, public_path: str) -> None:
        """Remove an upload that ended up with nothing referencing it."""
        if not public_path.startswith(UPLOAD_URL_PREFIX):
            return
        stored_name = public_path[len(UPLOAD_URL_PREFIX):]
        destination = self._settings.upload_dir / stored_name
        try:
            destination.unlink(missing_ok=True)
        except OSError:
            logger.exception("Upload cleanup failed: %s", destination)
        self._files.delete_file_by_name(stored_name)
        logger.info("Upload discarded: %s", stored_name)
