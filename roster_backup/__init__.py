"""Roster Backup - employee roster CSV backups with an auditable history."""

__version__ = "0.1.0"
