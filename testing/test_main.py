"""Tests for the command line entry point."""

from datetime import date, datetime, timedelta

from sqlalchemy.orm import sessionmaker

from roster_backup.db.database import create_db_engine
from roster_backup.main import main
from roster_backup.models.backup import Backup, BackupStatus
from roster_backup.models.employee import Employee


def _write_config(tmp_path, extra=""):
    path = tmp_path / "system.yaml"
    path.write_text(
        f"""
database:
  url: sqlite:///{(tmp_path / 'cli.db').as_posix()}
storage:
  root: {(tmp_path / 'files').as_posix()}
paths:
  data: {tmp_path.as_posix()}
{extra}
""",
        encoding="utf-8",
    )
    return path


def _session(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cli.db'}")
    return engine, sessionmaker(bind=engine)()


def _rows(tmp_path):
    engine, db = _session(tmp_path)
    try:
        return [(b.worker, b.status) for b in db.query(Backup).order_by(Backup.id)]
    finally:
        db.close()
        engine.dispose()


def _seed_running_backup(tmp_path, started_at):
    """An employee plus an IN_PROGRESS backup owned by another process."""
    engine, db = _session(tmp_path)
    try:
        db.add(Employee(
            employee_number="EMP-0001",
            name="Employee 1",
            email="employee1@example.com",
            hire_date=date(2020, 1, 1),
        ))
        db.add(Backup(worker="other", status=BackupStatus.IN_PROGRESS, started_at=started_at))
        db.commit()
    finally:
        db.close()
        engine.dispose()


def test_empty_roster_run_records_skipped_backup(tmp_path):
    config_path = _write_config(tmp_path)

    exit_code = main(["--config", str(config_path), "--worker", "10.0.0.7"])

    assert exit_code == 0
    assert _rows(tmp_path) == [("10.0.0.7", BackupStatus.SKIPPED)]


def test_runs_twice_against_same_database(tmp_path):
    config_path = _write_config(tmp_path)

    assert main(["--config", str(config_path)]) == 0
    assert main(["--config", str(config_path)]) == 0

    assert [status for _, status in _rows(tmp_path)] == [BackupStatus.SKIPPED, BackupStatus.SKIPPED]


def test_overlapping_run_is_rejected_and_leaves_running_backup_alone(tmp_path):
    config_path = _write_config(tmp_path)
    assert main(["--config", str(config_path)]) == 0
    _seed_running_backup(tmp_path, datetime.utcnow())

    exit_code = main(["--config", str(config_path)])

    assert exit_code == 1
    assert _rows(tmp_path) == [
        ("localhost", BackupStatus.SKIPPED),
        ("other", BackupStatus.IN_PROGRESS),
    ]


def test_recover_flag_leaves_recent_backup_running(tmp_path):
    config_path = _write_config(tmp_path)
    assert main(["--config", str(config_path)]) == 0
    _seed_running_backup(tmp_path, datetime.utcnow() - timedelta(minutes=5))

    exit_code = main(["--config", str(config_path), "--recover"])

    assert exit_code == 1
    assert _rows(tmp_path)[-1] == ("other", BackupStatus.IN_PROGRESS)


def test_recover_flag_fails_stale_backup_then_runs(tmp_path):
    config_path = _write_config(tmp_path)
    assert main(["--config", str(config_path)]) == 0
    _seed_running_backup(tmp_path, datetime.utcnow() - timedelta(hours=3))

    exit_code = main(["--config", str(config_path), "--recover"])

    assert exit_code == 0
    assert _rows(tmp_path) == [
        ("localhost", BackupStatus.SKIPPED),
        ("other", BackupStatus.FAILED),
        ("localhost", BackupStatus.COMPLETED),
    ]


def test_invalid_config_exits_with_usage_error(tmp_path):
    config_path = _write_config(tmp_path, extra="backup:\n  default_sort_direction: sideways\n")

    assert main(["--config", str(config_path)]) == 2
