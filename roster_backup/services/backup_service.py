"""Employee roster backup service: run backups and search their history."""

import logging
import traceback
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roster_backup.config.models import BackupConfig
from roster_backup.exceptions import (
    ArtifactNotFound,
    BackupAlreadyInProgress,
    BackupNotFound,
    ConsistencyError,
    InvalidCursor,
    InvalidPageSize,
    InvalidSortDirection,
    InvalidSortField,
    LogWriteError,
    ValidationError,
)
from roster_backup.models.backup import Backup, BackupStatus, SORT_DIRECTIONS, SORT_FIELD_ALIASES
from roster_backup.repositories.backup_repository import BackupRepository, BackupSearchFilter
from roster_backup.repositories.binary_content_repository import BinaryContentRepository
from roster_backup.repositories.change_log_repository import ChangeLogRepository
from roster_backup.repositories.employee_repository import EmployeeRepository
from roster_backup.schemas import BackupView, CursorPageResponse, to_view
from roster_backup.services.binary_content_storage import BinaryContentStorage
from roster_backup.services.employee_csv_generator import EmployeeCsvGenerator
from roster_backup.utils.cursor import check_cursor_id, decode_cursor, encode_cursor

logger = logging.getLogger(__name__)

FILE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
CSV_CONTENT_TYPE = "text/csv"
LOG_CONTENT_TYPE = "text/plain"


class BackupService:
    """
    Runs roster backups and exposes their history.

    A run goes through these steps:
    1. Refuse to start while another backup is IN_PROGRESS
    2. Record a SKIPPED backup when nothing changed since the last success
    3. Commit an IN_PROGRESS backup
    4. Render the CSV, store it, and mark the backup COMPLETED
    5. On failure, store the traceback as a log file and mark it FAILED
    """

    def __init__(
        self,
        db: Session,
        storage: BinaryContentStorage,
        config: Optional[BackupConfig] = None,
        csv_generator: Optional[EmployeeCsvGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize backup service.

        Args:
            db: SQLAlchemy database session
            storage: Storage for CSV and error log bytes
            config: Backup settings (defaults if omitted)
            csv_generator: Roster renderer (built from config if omitted)
            clock: Returns the current naive UTC time
        """
        self.db = db
        self.storage = storage
        self.config = config or BackupConfig()
        self.backups = BackupRepository(db)
        self.binary_contents = BinaryContentRepository(db)
        self.employees = EmployeeRepository(db)
        self.change_logs = ChangeLogRepository(db)
        self.csv_generator = csv_generator or EmployeeCsvGenerator(
            self.employees,
            encoding=self.config.csv_encoding,
            batch_size=self.config.batch_size,
            temp_dir=self.config.temp_dir,
        )
        self._clock = clock or datetime.utcnow

    # ------------------------------------------------------------------
    # Running backups
    # ------------------------------------------------------------------

    def run_backup(self, worker: str) -> BackupView:
        """
        Run one backup on behalf of ``worker``.

        Generation failures do not raise; they come back as a FAILED backup.

        Returns:
            The backup in its final state (SKIPPED, COMPLETED or FAILED)

        Raises:
            BackupAlreadyInProgress: Another backup is running
            LogWriteError: The backup failed and its error log could not be stored
            ConsistencyError: A row created during this run disappeared
        """
        logger.info(f"Backup requested by {worker}")

        if self.backups.exists_by_status(BackupStatus.IN_PROGRESS):
            logger.warning(f"Backup request from {worker} rejected: another backup is in progress")
            raise BackupAlreadyInProgress()

        if not self._is_backup_required():
            skipped = self.backups.create_skipped(worker, self._clock())
            return to_view(skipped)

        backup = self.backups.create_in_progress(worker, self._clock())
        backup_id = backup.id
        started_at = backup.started_at

        file_id = None
        try:
            file_id = self._generate_backup_file(backup)
            completed = self._mark_backup_completed(backup_id, file_id)
        except ConsistencyError:
            raise
        except Exception as e:
            logger.error(f"Backup {backup_id} failed: {e}", exc_info=True)
            self.db.rollback()
            if file_id is not None:
                # Stored but never attached to the backup
                self._discard_binary_content(file_id)
            failed = self._record_failure(backup_id, started_at, e)
            return to_view(failed)

        logger.info(f"Backup {backup_id} completed (file {file_id})")
        return to_view(completed)

    def recover_interrupted_backups(self, stale_after: Optional[timedelta] = None) -> List[BackupView]:
        """
        Fail IN_PROGRESS backups left behind by a process that died.

        A live backup looks exactly like an interrupted one, so pass
        ``stale_after`` to touch only backups that started at least that long
        ago. Without it every IN_PROGRESS backup is failed, which is only safe
        when no other process can be running one.

        Args:
            stale_after: Minimum age of a backup before it is considered interrupted

        Returns:
            The recovered backups, now FAILED
        """
        started_before = self._clock() - stale_after if stale_after is not None else None

        recovered = []
        for backup in self.backups.list_by_status(BackupStatus.IN_PROGRESS, started_before=started_before):
            logger.warning(f"Backup {backup.id} (started {backup.started_at}) was interrupted, marking FAILED")
            error = RuntimeError(
                f"Backup {backup.id} started at {backup.started_at.isoformat()} was interrupted "
                f"before it finished"
            )
            recovered.append(to_view(self._record_failure(backup.id, backup.started_at, error)))
        return recovered

    def _is_backup_required(self) -> bool:
        if not self.employees.exists_any():
            logger.info("No employees to back up")
            return False

        last_completed = self.backups.find_latest_by_status(BackupStatus.COMPLETED)
        if last_completed is None:
            return True

        if self.change_logs.exists_change_after(last_completed.ended_at):
            return True

        logger.info(f"No employee changes since backup {last_completed.id} ended at {last_completed.ended_at}")
        return False

    def _generate_backup_file(self, backup: Backup) -> int:
        """
        Render the roster and store it as a CSV binary content.

        The metadata row is committed before any bytes are written so that a
        failure can be cleaned up by id. On failure the stored bytes and the
        row are removed and the original error is re-raised.

        Returns:
            Binary content id of the CSV
        """
        content_id = self.binary_contents.create().id

        try:
            with self.csv_generator.staged(backup) as csv_path:
                size = self.storage.put_file(content_id, csv_path)

            file_name = f"employee_backup_{backup.id}_{backup.started_at.strftime(FILE_TIMESTAMP_FORMAT)}.csv"
            finalized = self.binary_contents.finalize(
                content_id,
                size=size,
                file_name=file_name,
                content_type=CSV_CONTENT_TYPE,
            )
            if finalized is None:
                raise ArtifactNotFound(f"Binary content {content_id} vanished while finalizing backup CSV")
        except Exception:
            self.db.rollback()
            self._discard_binary_content(content_id)
            raise

        logger.info(f"Stored {file_name} ({size} bytes) as binary content {content_id}")
        return content_id

    def _save_error_log_file(self, backup_id: int, started_at: datetime, error: BaseException) -> int:
        """
        Store the traceback of ``error`` as a text log.

        Returns:
            Binary content id of the log

        Raises:
            LogWriteError: The log could not be stored
        """
        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        file_name = f"backup_error_{backup_id}_{started_at.strftime(FILE_TIMESTAMP_FORMAT)}.log"

        content_id = None
        try:
            content_id = self.binary_contents.create(file_name=file_name, content_type=LOG_CONTENT_TYPE).id
            size = self.storage.put_text(content_id, trace)
            finalized = self.binary_contents.finalize(content_id, size=size)
        except (OSError, SQLAlchemyError) as e:
            logger.error(f"Could not write error log for backup {backup_id}: {e}")
            self.db.rollback()
            if content_id is not None:
                self._discard_binary_content(content_id)
            raise LogWriteError(f"Failed to write error log for backup {backup_id}: {e}") from e

        if finalized is None:
            raise ArtifactNotFound(f"Error log {content_id} vanished while finalizing")
        return content_id

    def _record_failure(self, backup_id: int, started_at: datetime, error: BaseException) -> Backup:
        """Write the error log and move the backup to FAILED."""
        try:
            log_id = self._save_error_log_file(backup_id, started_at, error)
        except LogWriteError:
            # Release the in-progress slot even though the failure is unrecorded
            self._mark_backup_failed(backup_id, None)
            raise
        return self._mark_backup_failed(backup_id, log_id)

    def _mark_backup_completed(self, backup_id: int, file_id: int) -> Backup:
        backup = self.backups.get_by_id(backup_id)
        if backup is None:
            raise BackupNotFound(f"Backup {backup_id} not found")

        file = self.binary_contents.get_by_id(file_id)
        if file is None:
            raise ArtifactNotFound(f"Backup CSV {file_id} not found")

        backup.complete_backup(file, self._clock())
        return self.backups.save(backup)

    def _mark_backup_failed(self, backup_id: int, log_file_id: Optional[int]) -> Backup:
        backup = self.backups.get_by_id(backup_id)
        if backup is None:
            raise BackupNotFound(f"Backup {backup_id} not found")

        log_file = None
        if log_file_id is not None:
            log_file = self.binary_contents.get_by_id(log_file_id)
            if log_file is None:
                raise ArtifactNotFound(f"Backup error log {log_file_id} not found")

        backup.fail_backup(log_file, self._clock())
        failed = self.backups.save(backup)
        logger.info(f"Backup {backup_id} marked FAILED (error log {log_file_id})")
        return failed

    def _discard_binary_content(self, content_id: int) -> None:
        """Best-effort removal of stored bytes and their metadata row."""
        try:
            self.storage.delete(content_id)
        except OSError as e:
            logger.warning(f"Failed to delete stored file for binary content {content_id}: {e}")

        try:
            self.binary_contents.delete(content_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to delete binary content row {content_id}: {e}")

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def search_backups(
        self,
        worker: Optional[str] = None,
        status: Optional[Union[BackupStatus, str]] = None,
        started_at_from: Optional[datetime] = None,
        started_at_to: Optional[datetime] = None,
        id_after: Optional[int] = None,
        cursor: Optional[str] = None,
        size: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> CursorPageResponse:
        """
        Search backup history one page at a time.

        Results are ordered by ``sort_field`` then by id ascending. Pass the
        returned ``next_cursor`` (or ``next_id_after``) to get the next page.
        A cursor takes precedence over ``id_after``.

        Args:
            worker: Case-insensitive substring of the worker
            status: Exact status
            started_at_from: Inclusive lower bound on started_at
            started_at_to: Inclusive upper bound on started_at
            id_after: Id of the last backup of the previous page
            cursor: Opaque cursor from the previous page
            size: Page size (config default if omitted)
            sort_field: startedAt, endedAt or status
            sort_direction: ASC or DESC

        Raises:
            InvalidPageSize, InvalidSortField, InvalidSortDirection, InvalidCursor
        """
        if size is None:
            size = self.config.default_page_size
        if size < 1 or size > self.config.max_page_size:
            raise InvalidPageSize(f"size must be between 1 and {self.config.max_page_size}, got {size}")

        sort_field = sort_field or self.config.default_sort_field
        sort_attr = SORT_FIELD_ALIASES.get(sort_field)
        if sort_attr is None:
            raise InvalidSortField(f"Unsupported sort field: {sort_field}")

        direction = (sort_direction or self.config.default_sort_direction).upper()
        if direction not in SORT_DIRECTIONS:
            raise InvalidSortDirection(f"Unsupported sort direction: {sort_direction}")

        if cursor is not None:
            id_after = decode_cursor(cursor)
        elif id_after is not None:
            id_after = check_cursor_id(id_after)

        filters = BackupSearchFilter(
            worker=worker,
            status=self._coerce_status(status),
            started_at_from=_as_naive_utc(started_at_from),
            started_at_to=_as_naive_utc(started_at_to),
        )

        anchor = None
        if id_after is not None:
            anchor = self.backups.get_by_id(id_after)
            if anchor is None:
                raise InvalidCursor(f"No backup with id {id_after} to continue after")

        rows = self.backups.search(filters, sort_attr, direction == "DESC", size + 1, after=anchor)
        has_next = len(rows) > size
        rows = rows[:size]
        next_id_after = rows[-1].id if has_next else None

        return CursorPageResponse(
            content=[to_view(backup) for backup in rows],
            next_cursor=encode_cursor(next_id_after),
            next_id_after=next_id_after,
            size=size,
            total_elements=self.backups.count(filters),
            has_next=has_next,
        )

    def find_latest_backup_by_status(self, status: Union[BackupStatus, str] = BackupStatus.COMPLETED) -> Optional[BackupView]:
        """Most recently ended backup with ``status``, or None."""
        backup = self.backups.find_latest_by_status(self._coerce_status(status))
        return to_view(backup) if backup is not None else None

    def get_backup(self, backup_id: int) -> BackupView:
        backup = self.backups.get_by_id(backup_id)
        if backup is None:
            raise BackupNotFound(f"Backup {backup_id} not found")
        return to_view(backup)

    @staticmethod
    def _coerce_status(status: Optional[Union[BackupStatus, str]]) -> Optional[BackupStatus]:
        if status is None or isinstance(status, BackupStatus):
            return status
        try:
            return BackupStatus(status.upper())
        except ValueError:
            raise ValidationError(f"Unknown backup status: {status}") from None


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert aware datetimes to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
