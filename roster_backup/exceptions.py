"""Domain errors raised by the backup service."""


class RosterBackupError(Exception):
    """Base class for backup errors. ``code`` is stable across releases."""

    code = "ROSTER_BACKUP_ERROR"
    default_message = "Backup operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


class BackupAlreadyInProgress(RosterBackupError):
    """Another backup holds the IN_PROGRESS slot."""

    code = "BACKUP_ALREADY_IN_PROGRESS"
    default_message = "A backup is already in progress"


class ConsistencyError(RosterBackupError):
    """A row created earlier in the same call has disappeared."""


class BackupNotFound(ConsistencyError):
    code = "BACKUP_NOT_FOUND"
    default_message = "Backup not found"


class ArtifactNotFound(ConsistencyError):
    code = "BINARY_CONTENT_NOT_FOUND"
    default_message = "Binary content not found"


class LogWriteError(RosterBackupError):
    """The backup failed and its error log could not be written either."""

    code = "FILE_WRITE_ERROR"
    default_message = "Failed to write backup error log"


class ValidationError(RosterBackupError, ValueError):
    """Rejected input. Raised before any store access."""

    code = "INVALID_INPUT"
    default_message = "Invalid input"


class InvalidCursor(ValidationError):
    code = "INVALID_CURSOR"
    default_message = "Invalid cursor format"


class InvalidPageSize(ValidationError):
    code = "INVALID_PAGE_SIZE"
    default_message = "Invalid page size"


class InvalidSortField(ValidationError):
    code = "INVALID_SORT_FIELD"
    default_message = "Invalid sort field"


class InvalidSortDirection(ValidationError):
    code = "INVALID_SORT_DIRECTION"
    default_message = "Invalid sort direction"


__all__ = [
    "RosterBackupError",
    "BackupAlreadyInProgress",
    "ConsistencyError",
    "BackupNotFound",
    "ArtifactNotFound",
    "LogWriteError",
    "ValidationError",
    "InvalidCursor",
    "InvalidPageSize",
    "InvalidSortField",
    "InvalidSortDirection",
]
