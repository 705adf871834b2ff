"""Database configuration and session management."""

import os
from pathlib import Path
import logging
from typing import Optional
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

# Base class for all models
Base = declarative_base()

# Database configuration
DATABASE_DIR = Path("data")
DATABASE_PATH = DATABASE_DIR / "roster_backup.db"
DATABASE_URL = f"sqlite:///{DATABASE_PATH}"
SQLITE_BUSY_TIMEOUT_SECONDS = 30

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def create_db_engine(
    database_url: str,
    busy_timeout_seconds: int = SQLITE_BUSY_TIMEOUT_SECONDS,
    echo: bool = False
) -> Engine:
    """
    Create an engine for the given URL.

    SQLite gets a busy timeout, cross-thread access and foreign key
    enforcement. Other backends use SQLAlchemy defaults.
    """
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args = {
            "check_same_thread": False,  # Needed for SQLite
            "timeout": busy_timeout_seconds
        }

    db_engine = create_engine(database_url, connect_args=connect_args, echo=echo)

    if url.get_backend_name() == "sqlite":
        event.listen(db_engine, "connect", _enable_sqlite_foreign_keys)

    return db_engine

# Created lazily by SQLAlchemy on first connect, so importing is side-effect free
engine = create_db_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def configure_database(
    database_url: str,
    busy_timeout_seconds: int = SQLITE_BUSY_TIMEOUT_SECONDS,
    echo: bool = False
) -> Engine:
    """
    Point the module-level engine and SessionLocal at ``database_url``.

    Returns:
        The new engine
    """
    global engine

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine.dispose()
    engine = create_db_engine(database_url, busy_timeout_seconds=busy_timeout_seconds, echo=echo)
    SessionLocal.configure(bind=engine)
    logger.info(
        "Database config: pid=%s timeout=%ss url=%s",
        os.getpid(),
        busy_timeout_seconds,
        url.render_as_string(hide_password=True)
    )
    return engine


def init_db(bind: Optional[Engine] = None):
    """
    Initialize the database.

    Creates all tables if they don't exist.
    """
    bind = bind or engine

    # Import all models so they're registered with Base
    from roster_backup.models import backup, binary_content, employee  # noqa: F401

    Base.metadata.create_all(bind=bind)

    # Enable WAL mode for better concurrency (allows readers during writes)
    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        with bind.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))  # Faster, still safe in WAL mode
            conn.commit()
        logger.info(f"Database initialized at: {bind.url.database} (WAL mode enabled)")
    else:
        logger.info("Database initialized")
