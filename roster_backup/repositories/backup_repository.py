"""Repository for backup history operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from roster_backup.exceptions import BackupAlreadyInProgress
from roster_backup.models.backup import Backup, BackupStatus

logger = logging.getLogger(__name__)


@dataclass
class BackupSearchFilter:
    """Filters applied to history searches and counts."""
    worker: Optional[str] = None
    status: Optional[BackupStatus] = None
    started_at_from: Optional[datetime] = None
    started_at_to: Optional[datetime] = None


class BackupRepository:
    """
    Repository for backup rows.

    Handles creation, terminal transitions and keyset-paginated search.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_in_progress(self, worker: str, started_at: datetime) -> Backup:
        """
        Insert and commit an IN_PROGRESS backup.

        Raises:
            BackupAlreadyInProgress: the single in-progress slot is taken
        """
        backup = Backup(worker=worker, status=BackupStatus.IN_PROGRESS, started_at=started_at)
        self.db.add(backup)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Rejected concurrent backup start by {worker}: {e.orig}")
            raise BackupAlreadyInProgress() from e
        self.db.refresh(backup)
        logger.info(f"Created in-progress backup {backup.id} for {worker}")
        return backup

    def create_skipped(self, worker: str, at: datetime) -> Backup:
        """Insert and commit a SKIPPED backup that starts and ends at ``at``."""
        backup = Backup(worker=worker, status=BackupStatus.SKIPPED, started_at=at, ended_at=at)
        self.db.add(backup)
        self.db.commit()
        self.db.refresh(backup)
        logger.info(f"Recorded skipped backup {backup.id} for {worker}")
        return backup

    def save(self, backup: Backup) -> Backup:
        """Commit pending changes on ``backup``."""
        self.db.add(backup)
        self.db.commit()
        self.db.refresh(backup)
        return backup

    def get_by_id(self, backup_id: int) -> Optional[Backup]:
        return self.db.get(Backup, backup_id)

    def exists_by_status(self, status: BackupStatus) -> bool:
        return self.db.query(Backup.id).filter(Backup.status == status).first() is not None

    def find_latest_by_status(self, status: BackupStatus) -> Optional[Backup]:
        """
        Most recently ended backup with ``status``.

        Returns:
            Backup or None if no backup has that status
        """
        return (
            self.db.query(Backup)
            .filter(Backup.status == status)
            .order_by(Backup.ended_at.desc(), Backup.id.desc())
            .first()
        )

    def list_by_status(self, status: BackupStatus, started_before: Optional[datetime] = None) -> List[Backup]:
        """Backups with ``status`` in id order, optionally only those started at or before ``started_before``."""
        query = self.db.query(Backup).filter(Backup.status == status)
        if started_before is not None:
            query = query.filter(Backup.started_at <= started_before)
        return query.order_by(Backup.id.asc()).all()

    def search(
        self,
        filters: BackupSearchFilter,
        sort_attr: str,
        descending: bool,
        limit: int,
        after: Optional[Backup] = None
    ) -> List[Backup]:
        """
        Fetch up to ``limit`` backups matching ``filters``.

        Rows are ordered by ``sort_attr`` (NULLs last in both directions) and
        then by id ascending, so the order is total. When ``after`` is given,
        only rows strictly after it in that order are returned.

        Args:
            filters: Search filters
            sort_attr: Backup attribute for the primary ordering
            descending: Direction of the primary ordering
            limit: Maximum rows to return
            after: Anchor row from the previous page
        """
        column = getattr(Backup, sort_attr)
        nulls_last = case((column.is_(None), 1), else_=0)

        query = self._filtered(filters)
        if after is not None:
            query = query.filter(self._after_anchor(column, descending, after, getattr(after, sort_attr)))

        return (
            query
            .order_by(nulls_last.asc(), column.desc() if descending else column.asc(), Backup.id.asc())
            .limit(limit)
            .all()
        )

    def count(self, filters: BackupSearchFilter) -> int:
        """Count every backup matching ``filters``."""
        return self._filtered(filters).count()

    def _filtered(self, filters: BackupSearchFilter) -> Query:
        query = self.db.query(Backup)
        if filters.worker:
            query = query.filter(Backup.worker.icontains(filters.worker, autoescape=True))
        if filters.status is not None:
            query = query.filter(Backup.status == filters.status)
        if filters.started_at_from is not None:
            query = query.filter(Backup.started_at >= filters.started_at_from)
        if filters.started_at_to is not None:
            query = query.filter(Backup.started_at <= filters.started_at_to)
        return query

    @staticmethod
    def _after_anchor(column, descending: bool, anchor: Backup, anchor_value):
        if anchor_value is None:
            # NULLs sort last, so only later NULL rows remain
            return and_(column.is_(None), Backup.id > anchor.id)
        beyond = column < anchor_value if descending else column > anchor_value
        same_value_later_id = and_(column == anchor_value, Backup.id > anchor.id)
        return or_(beyond, same_value_later_id, column.is_(None))
