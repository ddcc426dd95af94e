import logging
import os
import uuid
from typing import Optional, Sequence

from secure_files.core.config import Settings
from secure_files.core.errors import (
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from secure_files.models.file import PRIVATE, PUBLIC, FileRecord
from secure_files.services.registry import FileRegistry
from secure_files.services.storage import UploadStore, client_basename, make_stored_name

logger = logging.getLogger(__name__)

ORIGINAL_NAME_LENGTH = FileRecord.__table__.c.original_name.type.length


def fit_column(name: str, limit: int) -> str:
    """Shorten ``name`` to ``limit`` characters, keeping its extension."""
    if len(name) <= limit:
        return name
    base, ext = os.path.splitext(name)
    ext = ext[:limit // 4]
    return base[:limit - len(ext)] + ext


def parse_visibility(privacy: Optional[str]) -> str:
    """Anything other than "private" means public."""
    return PRIVATE if (privacy or PUBLIC).strip().lower() == PRIVATE else PUBLIC


class UploadHandler:
    """Validates one uploaded file, stores it and records its metadata.

    ``uploads`` are objects with ``filename``, ``content_type`` and a
    readable ``file`` (FastAPI's UploadFile fits).
    """

    def __init__(self, settings: Settings, registry: FileRegistry, store: UploadStore):
        self.registry = registry
        self.store = store
        self.allowed_mime = [m.lower() for m in settings.ALLOWED_MIME]
        self.max_bytes = settings.max_upload_bytes
        self.max_mb = settings.MAX_FILE_SIZE_MB

    def _check_content_type(self, content_type: Optional[str]) -> str:
        # Parameters such as "; charset=..." are not part of the type
        declared = (content_type or "").split(";")[0].strip().lower()
        if declared not in self.allowed_mime:
            raise UnsupportedMediaTypeError(declared or "unknown", self.allowed_mime)
        return declared

    def handle(self, uploads: Sequence, privacy: Optional[str], owner_id: int) -> FileRecord:
        uploads = [u for u in (uploads or []) if u is not None]
        if not uploads:
            raise ValidationError("No file uploaded")
        if len(uploads) > 1:
            raise ValidationError("Only one file may be uploaded per request")
        upload = uploads[0]

        original_name = client_basename(upload.filename)
        if not original_name:
            raise ValidationError("No file uploaded")
        original_name = fit_column(original_name, ORIGINAL_NAME_LENGTH)

        try:
            mime_type = self._check_content_type(upload.content_type)
            declared_size = getattr(upload, "size", None)
            if declared_size is not None and declared_size > self.max_bytes:
                raise PayloadTooLargeError(self.max_mb)

            stored_name = make_stored_name(original_name)
            size = self.store.save(upload.file, stored_name, self.max_bytes, self.max_mb)
        except (UnsupportedMediaTypeError, PayloadTooLargeError) as exc:
            logger.info("Rejected upload from user id=%s: %s", owner_id, exc.message)
            raise

        visibility = parse_visibility(privacy)
        record = FileRecord(
            original_name=original_name,
            stored_name=stored_name,
            storage_path=self.store.url_path(stored_name),
            size=size,
            mime_type=mime_type,
            visibility=visibility,
            share_id=str(uuid.uuid4()) if visibility == PRIVATE else None,
            owner_id=owner_id,
        )

        try:
            self.registry.create(record)
        except Exception:
            # Don't leave orphaned content behind
            self.registry.db.rollback()
            self.store.remove(stored_name)
            raise

        logger.info(
            "User id=%s uploaded file id=%s (%s bytes, %s)",
            owner_id, record.id, size, visibility,
        )
        return record
