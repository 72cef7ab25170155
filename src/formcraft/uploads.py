from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from formcraft.config import Settings
from formcraft.errors import NotFound, UpstreamError, ValidationFailed
from formcraft.protocols import Storage
from formcraft.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)


async def save_upload(storage: Storage, settings: Settings, file_obj: Any) -> dict[str, Any]:
    """Persist an uploaded file and return the reference stored inside responses."""
    if file_obj is None or not getattr(file_obj, "filename", ""):
        raise ValidationFailed("No file uploaded")
    content = await file_obj.read()
    if settings.upload_max_bytes is not None and len(content) > settings.upload_max_bytes:
        raise ValidationFailed("File exceeds the maximum upload size")

    file_id = new_ulid()
    suffix = Path(file_obj.filename).suffix
    destination = settings.upload_dir / f"{file_id}{suffix}"
    try:
        destination.write_bytes(content)
    except OSError as exc:
        logger.error("File upload failed: %s", exc)
        raise UpstreamError(f"File upload failed: {exc}") from exc

    storage.files.create_file(
        {
            "id": file_id,
            "original_name": file_obj.filename,
            "stored_path": str(destination),
            "content_type": file_obj.content_type or "",
            "size": len(content),
            "created_at": now_utc(),
        }
    )
    logger.info("File uploaded: %s (%d bytes) as %s", file_obj.filename, len(content), file_id)
    return {
        "id": file_id,
        "filename": destination.name,
        "originalName": file_obj.filename,
        "size": len(content),
        "url": f"/files/{file_id}",
        "storage": "local",
    }


def resolve_upload_path(storage: Storage, settings: Settings, file_id: str) -> tuple[Path, dict[str, Any]]:
    file_meta = storage.files.get_file(file_id)
    if not file_meta:
        raise NotFound("File not found")
    path = Path(file_meta["stored_path"]).resolve()
    if settings.upload_dir.resolve() not in path.parents or not path.is_file():
        raise NotFound("File not found")
    return path, file_meta
