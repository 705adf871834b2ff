"""Shared fixtures: a throwaway SQLite database, storage root and clock per test."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from roster_backup.config.models import BackupConfig
from roster_backup.db.database import create_db_engine, init_db
from roster_backup.models.employee import ChangeType, Employee, EmployeeChangeLog
from roster_backup.services.backup_service import BackupService
from roster_backup.services.binary_content_storage import BinaryContentStorage


class FakeClock:
    """Returns a fixed time until advanced."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    storage = BinaryContentStorage(root=tmp_path / "binary_contents")
    yield storage
    storage.close()


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "staging"


@pytest.fixture
def backup_config(staging_dir):
    return BackupConfig(temp_dir=staging_dir, batch_size=2)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 9, 0, 0))


@pytest.fixture
def service(db, storage, backup_config, clock):
    return BackupService(db, storage, config=backup_config, clock=clock)


@pytest.fixture
def add_employee(db):
    """Insert an employee; numbering continues across calls."""
    counter = {"n": 0}

    def _add(name=None, department="Engineering", position="Developer"):
        counter["n"] += 1
        n = counter["n"]
        employee = Employee(
            employee_number=f"EMP-{n:04d}",
            name=name or f"Employee {n}",
            email=f"employee{n}@example.com",
            department=department,
            position=position,
            hire_date=date(2020, 1, n % 28 + 1),
        )
        db.add(employee)
        db.commit()
        return employee

    return _add


@pytest.fixture
def log_change(db):
    def _log(at: datetime, employee_number="EMP-0001", change_type=ChangeType.UPDATED):
        entry = EmployeeChangeLog(
            type=change_type,
            employee_number=employee_number,
            memo="test change",
            ip_address="127.0.0.1",
            at=at,
        )
        db.add(entry)
        db.commit()
        return entry

    return _log
