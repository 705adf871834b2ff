"""Models package for Roster Backup."""

from .binary_content import BinaryContent
from .backup import Backup, BackupStatus
from .employee import Employee, EmployeeStatus, EmployeeChangeLog, ChangeType

__all__ = [
    "BinaryContent",
    "Backup",
    "BackupStatus",
    "Employee",
    "EmployeeStatus",
    "EmployeeChangeLog",
    "ChangeType",
]
