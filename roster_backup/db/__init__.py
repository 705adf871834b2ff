"""Database package for Roster Backup."""

from .database import Base, configure_database, create_db_engine, init_db

__all__ = ["Base", "configure_database", "create_db_engine", "init_db"]
