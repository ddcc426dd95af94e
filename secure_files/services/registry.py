from typing import List, Optional

from sqlalchemy.orm import Session

from secure_files.models.file import PUBLIC, FileRecord


class FileRegistry:
    """Metadata store for uploaded files."""

    def __init__(self, db: Session):
        self.db = db

    def _newest_first(self, query):
        return query.order_by(FileRecord.uploaded_at.desc(), FileRecord.id.desc())

    def create(self, record: FileRecord) -> int:
        if not record.has_consistent_share_id():
            raise ValueError(
                f"share_id must be set exactly when visibility is private "
                f"(visibility={record.visibility!r})"
            )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record.id

    def list_public(self) -> List[FileRecord]:
        query = self.db.query(FileRecord).filter(FileRecord.visibility == PUBLIC)
        return self._newest_first(query).all()

    def list_by_owner(self, user_id: int) -> List[FileRecord]:
        query = self.db.query(FileRecord).filter(FileRecord.owner_id == user_id)
        return self._newest_first(query).all()

    def find_by_id(self, file_id: int) -> Optional[FileRecord]:
        return self.db.query(FileRecord).filter(FileRecord.id == file_id).first()

    def find_by_share_id(self, share_id: str) -> Optional[FileRecord]:
        if not share_id:
            return None
        return self.db.query(FileRecord).filter(FileRecord.share_id == share_id).first()

    def delete(self, record: FileRecord) -> None:
        self.db.delete(record)
        self.db.commit()
