"""Services package."""

from .binary_content_storage import BinaryContentStorage, StorageTimeoutError
from .employee_csv_generator import EmployeeCsvGenerator
from .backup_service import BackupService

__all__ = [
    'BinaryContentStorage',
    'StorageTimeoutError',
    'EmployeeCsvGenerator',
    'BackupService',
]
