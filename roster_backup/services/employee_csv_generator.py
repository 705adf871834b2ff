"""Render the employee roster to a temporary CSV file."""

import csv
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from roster_backup.models.backup import Backup
from roster_backup.models.employee import Employee
from roster_backup.repositories.employee_repository import EmployeeRepository

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "ID",
    "Employee Number",
    "Name",
    "Email",
    "Department",
    "Position",
    "Hire Date",
    "Status",
]


class EmployeeCsvGenerator:
    """Writes the full roster to a CSV file in a staging directory."""

    def __init__(
        self,
        employees: EmployeeRepository,
        encoding: str = "utf-8-sig",
        batch_size: int = 500,
        temp_dir: Optional[Path] = None,
    ):
        self.employees = employees
        self.encoding = encoding
        self.batch_size = batch_size
        self.temp_dir = Path(temp_dir) if temp_dir is not None else None
        if self.temp_dir is not None:
            self.temp_dir.mkdir(parents=True, exist_ok=True)

    def generate(self, backup: Backup) -> Path:
        """
        Write the roster to a new temporary file.

        The caller owns the returned file and must delete it; ``staged()``
        does that automatically.

        Returns:
            Path to the CSV file
        """
        fd, name = tempfile.mkstemp(
            prefix=f"employee_backup_{backup.id}_",
            suffix=".csv",
            dir=self.temp_dir,
        )
        path = Path(name)
        rows = 0
        try:
            with os.fdopen(fd, 'w', encoding=self.encoding, newline='') as f:
                writer = csv.writer(f)
                writer.writerow(CSV_HEADER)
                for employee in self.employees.iter_all(batch_size=self.batch_size):
                    writer.writerow(self._row(employee))
                    rows += 1
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.info(f"Rendered {rows} employees to {path} for backup {backup.id}")
        return path

    @contextmanager
    def staged(self, backup: Backup) -> Iterator[Path]:
        """Yield a freshly generated CSV and remove it afterwards, whatever happens."""
        path = self.generate(backup)
        try:
            yield path
        finally:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove temporary file {path}: {e}")

    @staticmethod
    def _row(employee: Employee) -> list:
        return [
            employee.id,
            employee.employee_number,
            employee.name,
            employee.email,
            employee.department or "",
            employee.position or "",
            employee.hire_date.isoformat() if employee.hire_date else "",
            employee.status.value if employee.status else "",
        ]
