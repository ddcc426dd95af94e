import logging
import os
import re
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from secure_files.core.config import Settings
from secure_files.core.errors import GoneError, PayloadTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_UNSAFE_BASE = re.compile(r"[^A-Za-z0-9_\-]")
_UNSAFE_EXT = re.compile(r"[^a-z0-9.]")

# Keeps stored names well under the 255 byte filename limit
MAX_BASE_LENGTH = 100
MAX_EXT_LENGTH = 16


def client_basename(filename: Optional[str]) -> str:
    """Last path component of a client supplied name (either separator)."""
    return os.path.basename((filename or "").replace("\\", "/"))


def make_stored_name(original_name: str) -> str:
    """Collision free on-disk name derived from the uploaded name.

    ``report (v2).pdf`` -> ``report__v2__1700000000000_<uuid4>.pdf``
    """
    name = client_basename(original_name)
    base, ext = os.path.splitext(name)
    ext = _UNSAFE_EXT.sub("", ext.lower())[:MAX_EXT_LENGTH]
    if ext == ".":
        ext = ""
    safe_base = _UNSAFE_BASE.sub("_", base)[:MAX_BASE_LENGTH] or "file"
    millis = int(time.time() * 1000)
    return f"{safe_base}_{millis}_{uuid.uuid4()}{ext}"


class UploadStore:
    """The local upload directory."""

    def __init__(self, settings: Settings):
        self.root = settings.upload_root
        self.url_prefix = "/uploads"

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def url_path(self, stored_name: str) -> str:
        return f"{self.url_prefix}/{stored_name}"

    def resolve(self, stored_name: str) -> Optional[Path]:
        """Absolute path for ``stored_name`` inside the root, else None.

        Only the basename of the stored value is used.
        """
        name = client_basename(stored_name)
        if not name or name in (".", ".."):
            return None
        path = (self.root / name).resolve()
        if path.parent != self.root:
            return None
        return path

    def save(self, source: BinaryIO, stored_name: str, max_bytes: int, max_mb: int) -> int:
        """Copy ``source`` into the root and return the number of bytes.

        Raises PayloadTooLargeError once more than ``max_bytes`` were read;
        the partial file is removed first.
        """
        self.ensure_root()
        path = self.resolve(stored_name)
        if path is None:
            raise ValueError(f"Invalid stored name: {stored_name!r}")

        written = 0
        buffer = open(path, "xb")
        try:
            with buffer:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise PayloadTooLargeError(max_mb)
                    buffer.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return written

    def open(self, stored_name: str) -> BinaryIO:
        """Open stored content for reading, GoneError when it is missing."""
        path = self.resolve(stored_name)
        if path is None:
            logger.warning("Stored name %r resolves outside the upload root", stored_name)
            raise GoneError()
        try:
            return open(path, "rb")
        except (FileNotFoundError, IsADirectoryError):
            logger.warning("Content missing on disk for %s", stored_name)
            raise GoneError()

    def remove(self, stored_name: str) -> bool:
        """Delete stored content; returns False when it was already gone."""
        path = self.resolve(stored_name)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True


def iter_file(handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks from an open file and close it when done."""
    try:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()
