"""Repository for employee roster reads."""

from typing import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from roster_backup.models.employee import Employee

class EmployeeRepository:
    """Read access to the roster used by backups."""

    def __init__(self, db: Session):
        self.db = db

    def exists_any(self) -> bool:
        """True if at least one employee exists."""
        return self.db.query(Employee.id).first() is not None

    def iter_all(self, batch_size: int = 500) -> Iterator[Employee]:
        """
        Yield every employee in id order, fetching ``batch_size`` rows per query.

        Keyset batches keep memory flat for large rosters.
        """
        last_id = 0
        while True:
            batch = self.db.scalars(
                select(Employee)
                .where(Employee.id > last_id)
                .order_by(Employee.id.asc())
                .limit(batch_size)
            ).all()
            if not batch:
                return
            yield from batch
            last_id = batch[-1].id
