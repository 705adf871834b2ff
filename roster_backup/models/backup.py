"""Database model for backup attempts."""

from datetime import datetime
from typing import Optional
from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
import enum

from roster_backup.db.database import Base


class BackupStatus(str, enum.Enum):
    """Lifecycle states of a backup attempt."""
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


# Public sort field name -> Backup attribute
SORT_FIELD_ALIASES = {
    "startedAt": "started_at",
    "started_at": "started_at",
    "endedAt": "ended_at",
    "ended_at": "ended_at",
    "status": "status",
}

SORT_DIRECTIONS = ("ASC", "DESC")

_IN_PROGRESS_ONLY = text("status = 'IN_PROGRESS'")


class Backup(Base):
    """
    One row per backup attempt.

    - Starts as IN_PROGRESS (or directly SKIPPED)
    - Moves to exactly one terminal status, never back
    - file_id is set only on COMPLETED, error_log_id only on FAILED
    - At most one IN_PROGRESS row exists, enforced by a partial unique index
    """
    __tablename__ = "backups"
    __table_args__ = (
        Index(
            "uq_backups_single_in_progress",
            "status",
            unique=True,
            sqlite_where=_IN_PROGRESS_ONLY,
            postgresql_where=_IN_PROGRESS_ONLY,
        ),
        CheckConstraint(
            "(status = 'IN_PROGRESS' AND ended_at IS NULL) OR (status != 'IN_PROGRESS' AND ended_at IS NOT NULL)",
            name="ck_backups_ended_at_matches_status",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    worker = Column(String(100), nullable=False)
    status = Column(Enum(BackupStatus, native_enum=False, length=20), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False, index=True)
    ended_at = Column(DateTime, nullable=True, index=True)
    file_id = Column(Integer, ForeignKey("binary_contents.id"), nullable=True, unique=True)
    error_log_id = Column(Integer, ForeignKey("binary_contents.id"), nullable=True, unique=True)

    file = relationship("BinaryContent", foreign_keys=[file_id])
    error_log = relationship("BinaryContent", foreign_keys=[error_log_id])

    def complete_backup(self, file, ended_at: datetime) -> None:
        """Attach the CSV artifact and close the attempt."""
        self._end(BackupStatus.COMPLETED, ended_at)
        self.file_id = file.id

    def fail_backup(self, log_file: Optional[object], ended_at: datetime) -> None:
        """Attach the error log (when one could be written) and close the attempt."""
        self._end(BackupStatus.FAILED, ended_at)
        self.error_log_id = log_file.id if log_file is not None else None

    def _end(self, status: BackupStatus, ended_at: datetime) -> None:
        if self.status is not BackupStatus.IN_PROGRESS:
            raise ValueError(f"Backup {self.id} already ended with status {self.status.value}")
        self.status = status
        self.ended_at = max(ended_at, self.started_at)

    def __repr__(self):
        return f"<Backup(id={self.id}, worker={self.worker}, status={self.status})>"
