"""Database model for stored file metadata."""

from datetime import datetime
from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from roster_backup.db.database import Base


class BinaryContent(Base):
    """
    Metadata for a file held by the binary content storage.

    The row is created before any bytes are written so the id can key the
    stored file. file_name, content_type and size are filled in once the
    bytes are on disk.
    """
    __tablename__ = "binary_contents"
    # Ids key stored files, so a deleted id must never be handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(String(255), nullable=True)
    content_type = Column(String(100), nullable=True)
    size = Column(BigInteger, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<BinaryContent(id={self.id}, file_name={self.file_name}, size={self.size})>"
