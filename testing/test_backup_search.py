"""
Tests for backup history search.

Tests cover:
- Walking every page returns each match exactly once, in order
- Sorting by start time, end time and status in both directions
- Worker, status and start time filters
- Cursor handling and input validation
"""

import base64
from datetime import datetime, timedelta, timezone

import pytest

from roster_backup.exceptions import (
    InvalidCursor,
    InvalidPageSize,
    InvalidSortDirection,
    InvalidSortField,
    ValidationError,
)
from roster_backup.models.backup import Backup, BackupStatus
from roster_backup.models.binary_content import BinaryContent
from roster_backup.schemas import InProgressBackup
from roster_backup.utils.cursor import encode_cursor

T0 = datetime(2025, 3, 1, 9, 0, 0)

# worker, status, started (minutes after T0), ended (minutes after T0)
HISTORY = [
    ("10.0.0.1", BackupStatus.COMPLETED, 0, 5),
    ("10.0.0.2", BackupStatus.SKIPPED, 10, 10),
    ("batch-50%", BackupStatus.FAILED, 10, 12),
    ("Batch-500", BackupStatus.COMPLETED, 20, 25),
    ("10.0.0.1", BackupStatus.SKIPPED, 20, 20),
    ("10.0.0.3", BackupStatus.COMPLETED, 5, 25),
    ("10.0.0.1", BackupStatus.FAILED, 30, 31),
    ("10.0.0.2", BackupStatus.SKIPPED, 30, 30),
    ("10.0.0.1", BackupStatus.COMPLETED, 40, 45),
    ("10.0.0.2", BackupStatus.IN_PROGRESS, 50, None),
    ("10.0.0.4", BackupStatus.SKIPPED, 0, 0),
]


@pytest.fixture
def history(db):
    rows = []
    for worker, status, started, ended in HISTORY:
        backup = Backup(
            worker=worker,
            status=status,
            started_at=T0 + timedelta(minutes=started),
            ended_at=T0 + timedelta(minutes=ended) if ended is not None else None,
        )
        if status is BackupStatus.COMPLETED:
            backup.file = BinaryContent(file_name="roster.csv", content_type="text/csv", size=10)
        elif status is BackupStatus.FAILED:
            backup.error_log = BinaryContent(file_name="error.log", content_type="text/plain", size=10)
        db.add(backup)
        db.commit()
        rows.append(backup)
    return rows


def _sort_value(backup, attr):
    value = getattr(backup, attr)
    return value.value if isinstance(value, BackupStatus) else value


def _expected_ids(rows, attr, descending):
    """Sorted by ``attr`` with NULLs last, ties broken by ascending id."""
    by_id = sorted(rows, key=lambda b: b.id)
    present = [b for b in by_id if getattr(b, attr) is not None]
    missing = [b for b in by_id if getattr(b, attr) is None]
    # Stable sort keeps ascending id within ties, also when reversed
    present.sort(key=lambda b: _sort_value(b, attr), reverse=descending)
    return [b.id for b in present + missing]


def _walk(service, size, **kwargs):
    """Follow cursors until the last page; returns the ids seen and the pages."""
    ids, pages, cursor = [], [], None
    while True:
        page = service.search_backups(cursor=cursor, size=size, **kwargs)
        pages.append(page)
        ids.extend(b.id for b in page.content)
        if not page.has_next:
            return ids, pages
        cursor = page.next_cursor


class TestPagination:

    @pytest.mark.parametrize("sort_field, attr", [
        ("startedAt", "started_at"),
        ("endedAt", "ended_at"),
        ("status", "status"),
    ])
    @pytest.mark.parametrize("direction", ["ASC", "DESC"])
    @pytest.mark.parametrize("size", [1, 3, 4, 11, 100])
    def test_walk_returns_every_row_once_in_order(self, service, history, sort_field, attr, direction, size):
        ids, pages = _walk(service, size, sort_field=sort_field, sort_direction=direction)

        assert ids == _expected_ids(history, attr, direction == "DESC")
        assert all(page.total_elements == len(HISTORY) for page in pages)
        assert all(len(page.content) == size for page in pages[:-1])

    def test_in_progress_row_sorts_last_by_end_time(self, service, history):
        for direction in ("ASC", "DESC"):
            page = service.search_backups(size=100, sort_field="endedAt", sort_direction=direction)

            assert isinstance(page.content[-1], InProgressBackup)

    def test_page_metadata(self, service, history):
        page = service.search_backups(size=4, sort_field="startedAt", sort_direction="ASC")

        assert page.size == 4
        assert page.has_next is True
        assert page.next_id_after == page.content[-1].id
        assert page.next_cursor == encode_cursor(page.next_id_after)

    def test_last_page_has_no_cursor(self, service, history):
        page = service.search_backups(size=len(HISTORY))

        assert len(page.content) == len(HISTORY)
        assert page.has_next is False
        assert page.next_cursor is None
        assert page.next_id_after is None

    def test_id_after_continues_like_cursor(self, service, history):
        first = service.search_backups(size=3, sort_field="endedAt", sort_direction="DESC")

        by_cursor = service.search_backups(
            cursor=first.next_cursor, size=3, sort_field="endedAt", sort_direction="DESC"
        )
        by_id = service.search_backups(
            id_after=first.next_id_after, size=3, sort_field="endedAt", sort_direction="DESC"
        )

        assert by_cursor == by_id

    def test_cursor_takes_precedence_over_id_after(self, service, history):
        first = service.search_backups(size=3, sort_field="startedAt", sort_direction="ASC")

        page = service.search_backups(
            cursor=first.next_cursor,
            id_after=history[-1].id,
            size=3,
            sort_field="startedAt",
            sort_direction="ASC",
        )
        expected = service.search_backups(
            id_after=first.next_id_after, size=3, sort_field="startedAt", sort_direction="ASC"
        )

        assert page == expected

    def test_repeated_search_is_identical(self, service, history):
        kwargs = dict(worker="10.0.0", size=3, sort_field="status", sort_direction="DESC")

        assert service.search_backups(**kwargs) == service.search_backups(**kwargs)

    def test_empty_result(self, service, history):
        page = service.search_backups(worker="no-such-worker")

        assert page.content == []
        assert page.total_elements == 0
        assert page.has_next is False
        assert page.next_cursor is None

    def test_defaults_to_newest_first(self, service, history):
        page = service.search_backups()

        assert page.size == 10
        assert page.has_next is True
        assert [b.id for b in page.content] == _expected_ids(history, "started_at", descending=True)[:10]


class TestFilters:

    def test_worker_is_case_insensitive_substring(self, service, history):
        page = service.search_backups(worker="BATCH", size=100)

        assert sorted(b.worker for b in page.content) == ["Batch-500", "batch-50%"]

    def test_worker_wildcards_are_literal(self, service, history):
        page = service.search_backups(worker="50%", size=100)

        assert [b.worker for b in page.content] == ["batch-50%"]
        assert page.total_elements == 1

    def test_status_filter(self, service, history):
        page = service.search_backups(status=BackupStatus.SKIPPED, size=100)

        assert {b.status for b in page.content} == {BackupStatus.SKIPPED}
        assert page.total_elements == 4

    def test_status_filter_accepts_names(self, service, history):
        page = service.search_backups(status="failed", size=100)

        assert page.total_elements == 2

    def test_started_at_range_is_inclusive(self, service, history):
        page = service.search_backups(
            started_at_from=T0 + timedelta(minutes=10),
            started_at_to=T0 + timedelta(minutes=20),
            size=100,
        )

        starts = sorted(b.started_at for b in page.content)
        assert starts[0] == T0 + timedelta(minutes=10)
        assert starts[-1] == T0 + timedelta(minutes=20)
        assert page.total_elements == 4

    def test_aware_bounds_are_compared_in_utc(self, service, history):
        seoul = timezone(timedelta(hours=9))
        page = service.search_backups(
            started_at_from=(T0 + timedelta(minutes=40)).replace(tzinfo=timezone.utc).astimezone(seoul),
            size=100,
        )

        assert page.total_elements == 2

    def test_filters_combine_with_pagination(self, service, history):
        ids, pages = _walk(service, 2, worker="10.0.0.1", sort_field="startedAt", sort_direction="ASC")

        matching = [b for b in history if "10.0.0.1" in b.worker]
        assert ids == _expected_ids(matching, "started_at", descending=False)
        assert all(page.total_elements == len(matching) for page in pages)


class TestValidation:

    @pytest.mark.parametrize("size", [0, -1, 101])
    def test_page_size_bounds(self, service, size):
        with pytest.raises(InvalidPageSize):
            service.search_backups(size=size)

    def test_unknown_sort_field(self, service):
        with pytest.raises(InvalidSortField) as exc_info:
            service.search_backups(sort_field="worker")

        assert exc_info.value.code == "INVALID_SORT_FIELD"

    def test_unknown_sort_direction(self, service):
        with pytest.raises(InvalidSortDirection):
            service.search_backups(sort_direction="UP")

    def test_sort_direction_is_case_insensitive(self, service, history):
        page = service.search_backups(sort_direction="asc", size=100)

        assert [b.id for b in page.content] == _expected_ids(history, "started_at", descending=False)

    def test_snake_case_sort_field_is_accepted(self, service, history):
        page = service.search_backups(sort_field="ended_at", sort_direction="ASC", size=100)

        assert [b.id for b in page.content] == _expected_ids(history, "ended_at", descending=False)

    def test_malformed_cursor(self, service):
        with pytest.raises(InvalidCursor):
            service.search_backups(cursor="not-base64")

    def test_cursor_for_missing_backup(self, service, history):
        with pytest.raises(InvalidCursor):
            service.search_backups(cursor=encode_cursor(9999))

    def test_unknown_id_after(self, service, history):
        with pytest.raises(InvalidCursor):
            service.search_backups(id_after=9999)

    def test_cursor_id_too_large_for_the_store(self, service, history):
        oversized = base64.b64encode(b'{"id":100000000000000000000}').decode("ascii")

        with pytest.raises(InvalidCursor):
            service.search_backups(cursor=oversized)

    @pytest.mark.parametrize("id_after", [0, -1, 2**63, 10**20])
    def test_id_after_outside_storable_range(self, service, history, id_after):
        with pytest.raises(InvalidCursor):
            service.search_backups(id_after=id_after)

    def test_unknown_status(self, service):
        with pytest.raises(ValidationError):
            service.search_backups(status="DONE")

    def test_validation_errors_are_value_errors(self, service):
        with pytest.raises(ValueError):
            service.search_backups(size=0)


def test_serializes_with_camel_case_keys(service, history):
    page = service.search_backups(size=2, sort_field="startedAt", sort_direction="ASC")

    data = page.model_dump(by_alias=True, mode="json")

    assert set(data) == {"content", "nextCursor", "nextIdAfter", "size", "totalElements", "hasNext"}
    first = data["content"][0]
    assert first["status"] == "COMPLETED"
    assert {"id", "worker", "startedAt", "endedAt", "fileId"} <= set(first)
    assert "errorLogId" not in first
