"""
Database migration management for Roster Backup.

Handles both fresh installs and incremental migrations for existing databases.
Uses Alembic for migration tracking and execution.
"""

import logging
from pathlib import Path
from typing import Optional
from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from alembic.config import Config
from alembic import command
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from roster_backup.db.database import create_db_engine

logger = logging.getLogger(__name__)


class MigrationManager:
    """
    Manage database migrations for Roster Backup.

    Supports two scenarios:
    1. Fresh install: Create schema directly (no migrations needed)
    2. Existing install: Apply incremental migrations from current version
    """

    def __init__(self, db_url: str, migrations_dir: Optional[Path] = None, engine: Optional[Engine] = None):
        """
        Initialize migration manager.

        Args:
            db_url: SQLAlchemy database URL (e.g., "sqlite:///data/roster_backup.db")
            migrations_dir: Path to migrations directory (defaults to alembic/)
            engine: Existing engine for db_url, created if omitted
        """
        self.db_url = db_url
        self.engine = engine or create_db_engine(db_url)

        if migrations_dir is None:
            migrations_dir = Path(__file__).parent.parent.parent / "alembic"

        self.migrations_dir = migrations_dir

        self.alembic_cfg = Config()
        self.alembic_cfg.set_main_option("script_location", str(self.migrations_dir))
        self.alembic_cfg.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
        self.alembic_cfg.attributes["configure_logger"] = False  # Use our logger

    def is_fresh_database(self) -> bool:
        """Return True if the database has no tables."""
        tables = inspect(self.engine).get_table_names()

        if not tables:
            logger.info("Fresh database detected - no tables exist")
            return True

        logger.info(f"Existing database detected - {len(tables)} tables found")
        return False

    def get_current_revision(self) -> Optional[str]:
        """Current migration revision, or None if none is recorded."""
        with self.engine.connect() as connection:
            context = MigrationContext.configure(connection)
            current_rev = context.get_current_revision()

        if current_rev:
            logger.info(f"Current migration revision: {current_rev}")
        else:
            logger.info("No migration revision found")
        return current_rev

    def get_head_revision(self) -> str:
        """Latest revision among the migration scripts."""
        script = ScriptDirectory.from_config(self.alembic_cfg)
        head = script.get_current_head()
        logger.info(f"Latest migration revision: {head}")
        return head

    def has_pending_migrations(self) -> bool:
        current = self.get_current_revision()
        head = self.get_head_revision()

        if current != head:
            logger.info(f"Pending migrations detected: {current} -> {head}")
            return True

        logger.info("Database is up to date - no pending migrations")
        return False

    def initialize_fresh_database(self):
        """
        Initialize a fresh database with the latest schema.

        This creates all tables using SQLAlchemy's create_all() and stamps
        the database with the current migration version.
        """
        from roster_backup.db.database import init_db

        logger.info("Initializing fresh database with latest schema...")
        init_db(bind=self.engine)

        command.stamp(self.alembic_cfg, "head")
        logger.info("Database stamped - ready to use")

    def apply_migrations(self):
        """Upgrade the database to the latest revision."""
        if not self.has_pending_migrations():
            return

        logger.info("Applying pending migrations...")
        try:
            command.upgrade(self.alembic_cfg, "head")
            logger.info("All migrations applied successfully")
        except Exception as e:
            logger.error(f"Migration failed: {e}", exc_info=True)
            raise RuntimeError(f"Failed to apply migrations: {e}") from e

    def ensure_database_ready(self):
        """
        Ensure database is ready for use.

        This is the main entry point - call this on application startup.
        """
        logger.info("Checking database state...")

        if self.is_fresh_database():
            self.initialize_fresh_database()
        else:
            self.apply_migrations()

        logger.info("Database is ready")


# Convenience function for application startup
def ensure_database_ready(db_url: str, engine: Optional[Engine] = None):
    """
    Ensure database is ready for use (call this on startup).

    Example:
        ensure_database_ready("sqlite:///data/roster_backup.db")
    """
    manager = MigrationManager(db_url, engine=engine)
    manager.ensure_database_ready()
