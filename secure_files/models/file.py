from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from secure_files.db.session import Base

PUBLIC = "public"
PRIVATE = "private"
VISIBILITIES = (PUBLIC, PRIVATE)


class FileRecord(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    original_name = Column(String(255), nullable=False)  # name the user uploaded
    stored_name = Column(String(255), nullable=False, unique=True)  # name on disk
    storage_path = Column(String(500), nullable=False)  # static URL path
    size = Column(BigInteger, nullable=False)  # bytes
    mime_type = Column(String(100), nullable=True)

    visibility = Column(String(10), nullable=False, default=PUBLIC, index=True)
    # Only private files carry a share id
    share_id = Column(String(36), nullable=True, unique=True, index=True)

    uploaded_at = Column(DateTime, default=datetime.utcnow, index=True)

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("User", back_populates="files")

    __table_args__ = (
        CheckConstraint(
            "visibility IN ({})".format(", ".join(f"'{v}'" for v in VISIBILITIES)),
            name="ck_files_visibility",
        ),
        CheckConstraint(
            f"(visibility = '{PRIVATE}') = (share_id IS NOT NULL)",
            name="ck_files_share_id_private_only",
        ),
    )

    @property
    def is_private(self) -> bool:
        return self.visibility == PRIVATE

    def has_consistent_share_id(self) -> bool:
        if self.visibility not in VISIBILITIES:
            return False
        if self.is_private:
            return bool(self.share_id)
        return self.share_id is None

    def __repr__(self):
        return f"<FileRecord(id={self.id}, original_name={self.original_name!r}, visibility={self.visibility})>"
