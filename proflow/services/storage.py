"""
File storage — uploaded attachments on local disk under UPLOAD_FOLDER.

Layout:
    <UPLOAD_FOLDER>/projects/<stored_filename>
    <UPLOAD_FOLDER>/tasks/<stored_filename>

Stored names are generated (uuid + sanitised original extension); the
original client filename is kept on the attachment row only.
"""

import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass

from flask import current_app
from werkzeug.utils import secure_filename

from proflow.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

PROJECT_FILES = "projects"
TASK_FILES = "tasks"


@dataclass
class StoredFile:
    filename: str
    stored_filename: str
    path: str
    mime_type: str
    size: int


def _folder(kind: str) -> str:
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], kind)
    os.makedirs(folder, exist_ok=True)
    return folder


def resolve_path(kind: str, stored_filename: str) -> str:
    return os.path.join(current_app.config["UPLOAD_FOLDER"], kind, stored_filename)


def save_upload(file_storage, kind: str, allowed_mime_types=None) -> StoredFile:
    """Write an uploaded werkzeug FileStorage to disk.

    Raises ValidationError for a missing/empty file, a disallowed MIME type
    or a file above MAX_ATTACHMENT_BYTES. Nothing is left on disk when
    validation fails.
    """
    if file_storage is None or not file_storage.filename:
        raise ValidationError("No file uploaded", details={"file": "required"})

    original = file_storage.filename
    mime_type = (
        file_storage.mimetype
        or mimetypes.guess_type(original)[0]
        or "application/octet-stream"
    )
    if allowed_mime_types is not None and mime_type not in allowed_mime_types:
        raise ValidationError(
            f"File type {mime_type} is not allowed", details={"file": "mime type"},
        )

    safe = secure_filename(original) or "upload"
    _, ext = os.path.splitext(safe)
    stored_filename = f"{uuid.uuid4().hex}{ext.lower()}"
    path = os.path.join(_folder(kind), stored_filename)
    file_storage.save(path)

    size = os.path.getsize(path)
    max_bytes = current_app.config.get("MAX_ATTACHMENT_BYTES", 10 * 1024 * 1024)
    if size == 0 or size > max_bytes:
        remove_file(path)
        if size == 0:
            raise ValidationError("Uploaded file is empty", details={"file": "empty"})
        raise ValidationError(
            f"File exceeds the {max_bytes // (1024 * 1024)} MB limit",
            details={"file": "too large"},
        )

    logger.info("Stored upload %s (%d bytes) as %s/%s", original, size, kind, stored_filename)
    return StoredFile(
        filename=original[:255],
        stored_filename=stored_filename,
        path=path,
        mime_type=mime_type,
        size=size,
    )


def remove_file(path: str) -> bool:
    """Best-effort delete; returns False when the file could not be removed."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError:
        logger.warning("Could not remove stored file %s", path, exc_info=True)
        return False
