"""Read models returned by the backup service."""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from roster_backup.models.backup import Backup, BackupStatus


class _BackupViewBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    worker: str
    started_at: datetime


class InProgressBackup(_BackupViewBase):
    """A backup still generating its CSV. It has no end time yet."""
    status: Literal[BackupStatus.IN_PROGRESS] = BackupStatus.IN_PROGRESS


class CompletedBackup(_BackupViewBase):
    status: Literal[BackupStatus.COMPLETED] = BackupStatus.COMPLETED
    ended_at: datetime
    file_id: int


class FailedBackup(_BackupViewBase):
    """
    A backup whose CSV could not be produced.

    error_log_id is None only when the error log itself could not be written.
    """
    status: Literal[BackupStatus.FAILED] = BackupStatus.FAILED
    ended_at: datetime
    error_log_id: Optional[int] = None


class SkippedBackup(_BackupViewBase):
    """No backup was needed. Starts and ends at the same instant."""
    status: Literal[BackupStatus.SKIPPED] = BackupStatus.SKIPPED
    ended_at: datetime


BackupView = Annotated[
    Union[InProgressBackup, CompletedBackup, FailedBackup, SkippedBackup],
    Field(discriminator="status"),
]


def to_view(backup: Backup) -> BackupView:
    """Build the view matching ``backup.status``."""
    common = {"id": backup.id, "worker": backup.worker, "started_at": backup.started_at}
    if backup.status is BackupStatus.IN_PROGRESS:
        return InProgressBackup(**common)
    if backup.status is BackupStatus.COMPLETED:
        return CompletedBackup(**common, ended_at=backup.ended_at, file_id=backup.file_id)
    if backup.status is BackupStatus.FAILED:
        return FailedBackup(**common, ended_at=backup.ended_at, error_log_id=backup.error_log_id)
    return SkippedBackup(**common, ended_at=backup.ended_at)


class CursorPageResponse(BaseModel):
    """One page of backup history."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: List[BackupView]
    next_cursor: Optional[str] = None
    next_id_after: Optional[int] = None
    size: int
    total_elements: int
    has_next: bool
