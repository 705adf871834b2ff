"""Repository for the employee change feed."""

from datetime import datetime

from sqlalchemy.orm import Session

from roster_backup.models.employee import EmployeeChangeLog


class ChangeLogRepository:
    """Queries over employee change log entries."""

    def __init__(self, db: Session):
        self.db = db

    def exists_change_after(self, at: datetime) -> bool:
        """True if any change was logged strictly after ``at``."""
        return (
            self.db.query(EmployeeChangeLog.id)
            .filter(EmployeeChangeLog.at > at)
            .first()
        ) is not None
