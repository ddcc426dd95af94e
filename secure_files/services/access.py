"""Who may read or remove a stored file.

Download by id:
    public record            -> anyone
    private record           -> bearer token of the owner only
Download by share id:
    private record           -> anyone holding the share id
    public record            -> BadRequestError (no share route)
Delete:
    owner only; content is removed first, then metadata.
"""

import logging
import mimetypes
import os
import re
from dataclasses import dataclass
from typing import BinaryIO, Optional
from urllib.parse import quote

from secure_files.core.errors import (
    AuthError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
)
from secure_files.core.security import TokenService
from secure_files.models.file import FileRecord
from secure_files.services.registry import FileRegistry
from secure_files.services.storage import UploadStore

logger = logging.getLogger(__name__)

_HEADER_UNSAFE = re.compile(r'[\r\n"]')


def safe_download_name(original_name: Optional[str]) -> str:
    return _HEADER_UNSAFE.sub("", original_name or "") or "file"


def content_disposition(filename: str) -> str:
    """Attachment header value.

    Non-ASCII names get an RFC 5987 `filename*` plus an ASCII fallback.
    """
    if filename.isascii():
        return f'attachment; filename="{filename}"'
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=utf-8''{quote(filename)}"


@dataclass
class Download:
    handle: BinaryIO
    size: int
    media_type: str
    filename: str

    @property
    def headers(self) -> dict:
        return {
            "Content-Disposition": content_disposition(self.filename),
            "Content-Length": str(self.size),
            "X-Content-Type-Options": "nosniff",
        }


class DownloadResolver:
    def __init__(self, registry: FileRegistry, store: UploadStore, tokens: TokenService):
        self.registry = registry
        self.store = store
        self.tokens = tokens

    def resolve_by_id(self, file_id: int, token: Optional[str] = None) -> Download:
        record = self.registry.find_by_id(file_id)
        if record is None:
            raise NotFoundError("Not found")

        if record.is_private:
            if not token:
                raise ForbiddenError("Forbidden (private file)")
            try:
                user_id = self.tokens.verify(token)
            except AuthError:
                raise ForbiddenError("Forbidden (invalid token)")
            if user_id != record.owner_id:
                raise ForbiddenError("Forbidden (not owner)")

        return self._open(record)

    def resolve_by_share(self, share_id: str) -> Download:
        record = self.registry.find_by_share_id(share_id)
        if record is None:
            raise NotFoundError("Invalid link")
        if not record.is_private:
            raise BadRequestError("Share link only for private files")
        return self._open(record)

    def _open(self, record: FileRecord) -> Download:
        # Opening before the response starts means a concurrent delete either
        # wins (GoneError here) or loses (the open handle still streams)
        handle = self.store.open(record.stored_name)
        size = os.fstat(handle.fileno()).st_size
        media_type, _ = mimetypes.guess_type(record.stored_name)
        logger.info("Serving file id=%s", record.id)
        return Download(
            handle=handle,
            size=size,
            media_type=media_type or "application/octet-stream",
            filename=safe_download_name(record.original_name),
        )


class DeletionHandler:
    def __init__(self, registry: FileRegistry, store: UploadStore):
        self.registry = registry
        self.store = store

    def delete(self, file_id: int, user_id: int) -> FileRecord:
        record = self.registry.find_by_id(file_id)
        if record is None:
            raise NotFoundError("Not found")
        if record.owner_id != user_id:
            logger.warning("User id=%s tried to delete file id=%s", user_id, file_id)
            raise ForbiddenError("Not owner")

        if not self.store.remove(record.stored_name):
            logger.warning("Content for file id=%s was already gone", file_id)
        self.registry.delete(record)
        logger.info("User id=%s deleted file id=%s", user_id, file_id)
        return record
