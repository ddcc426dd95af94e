from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from secure_files.core.config import Settings
from secure_files.models.file import FileRecord


# Single public-facing shape used by uploads and both listings
class FileSummary(BaseModel):
    id: int
    original_name: str
    size: int               # bytes
    visibility: str         # public | private
    uploaded_at: datetime
    path: str               # static URL path
    share_link: Optional[str] = None

    @classmethod
    def from_record(cls, record: FileRecord, settings: Settings) -> "FileSummary":
        return cls(
            id=record.id,
            original_name=record.original_name,
            size=record.size,
            visibility=record.visibility,
            uploaded_at=record.uploaded_at,
            path=record.storage_path,
            share_link=settings.share_link(record.share_id),
        )
