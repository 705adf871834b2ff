"""Main entry point for Roster Backup: run one backup and exit."""

import argparse
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

from roster_backup.exceptions import BackupAlreadyInProgress, RosterBackupError
from roster_backup.models.backup import BackupStatus


def setup_logging(debug: bool = False, log_dir: Path = Path("data/logs")):
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]

    log_file = None
    if debug:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"roster_backup_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(file_handler)

    # Root stays at INFO to avoid verbose library logs
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    app_logger = logging.getLogger('roster_backup')
    app_logger.setLevel(level)

    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('alembic').setLevel(logging.WARNING)

    if log_file:
        logging.getLogger(__name__).info(f"[STARTUP] Log file: {log_file}")
    return log_file


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Back up the employee roster to CSV.")
    parser.add_argument("--config", type=Path, default=None, help="Path to system.yaml (default: config/system.yaml)")
    parser.add_argument("--worker", default="localhost", help="Identity recorded on the backup (e.g. caller IP)")
    parser.add_argument(
        "--recover",
        action="store_true",
        help="Mark stale IN_PROGRESS backups FAILED before running (see backup.recover_stale_after_minutes)"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Load config, prepare the database, and run a single backup."""
    args = parse_args(argv)

    from roster_backup.config import ConfigLoader, ConfigLoadError
    try:
        system_config = ConfigLoader().load_system_config(args.config)
    except ConfigLoadError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        logging.getLogger(__name__).error(f"[STARTUP] {e}")
        return 2

    setup_logging(debug=system_config.debug, log_dir=system_config.paths.data / "logs")
    logger = logging.getLogger(__name__)

    from roster_backup.db import database
    from roster_backup.db.migrations import ensure_database_ready
    from roster_backup.services.backup_service import BackupService
    from roster_backup.services.binary_content_storage import BinaryContentStorage

    db_config = system_config.database
    engine = database.configure_database(db_config.url, db_config.busy_timeout_seconds, db_config.echo)
    ensure_database_ready(db_config.url, engine=engine)

    storage = BinaryContentStorage(
        root=system_config.storage.root,
        write_timeout_seconds=system_config.storage.write_timeout_seconds,
    )
    db = database.SessionLocal()
    try:
        backup_config = system_config.backup
        service = BackupService(db, storage, config=backup_config)

        if args.recover or backup_config.recover_interrupted_on_startup:
            stale_after = timedelta(minutes=backup_config.recover_stale_after_minutes)
            for recovered in service.recover_interrupted_backups(stale_after=stale_after):
                logger.warning(f"Recovered interrupted backup {recovered.id}")

        try:
            result = service.run_backup(args.worker)
        except BackupAlreadyInProgress as e:
            logger.warning(str(e))
            return 1
        except RosterBackupError as e:
            logger.error(f"Backup failed [{e.code}]: {e}")
            return 1

        logger.info(f"Backup {result.id} finished with status {result.status.value}")
        return 1 if result.status is BackupStatus.FAILED else 0
    finally:
        db.close()
        storage.close()


if __name__ == "__main__":
    sys.exit(main())
