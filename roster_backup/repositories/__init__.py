"""Repository pattern for database operations."""

from .backup_repository import BackupRepository, BackupSearchFilter
from .binary_content_repository import BinaryContentRepository
from .employee_repository import EmployeeRepository
from .change_log_repository import ChangeLogRepository

__all__ = [
    "BackupRepository",
    "BackupSearchFilter",
    "BinaryContentRepository",
    "EmployeeRepository",
    "ChangeLogRepository",
]
