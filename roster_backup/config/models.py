"""Pydantic models for configuration validation."""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from roster_backup.models.backup import SORT_FIELD_ALIASES, SORT_DIRECTIONS


class DatabaseConfig(BaseModel):
    """Relational store configuration."""

    url: str = "sqlite:///data/roster_backup.db"
    busy_timeout_seconds: int = Field(default=30, gt=0)
    echo: bool = False

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require a SQLAlchemy style URL."""
        if "://" not in v:
            raise ValueError('url must be a SQLAlchemy database URL (e.g. sqlite:///data/roster_backup.db)')
        return v


class StorageConfig(BaseModel):
    """Binary content storage configuration."""

    root: Path = Path("data/binary_contents")
    write_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upper bound for a single artifact write (None = unbounded)"
    )


class BackupConfig(BaseModel):
    """Backup run and history search configuration."""

    default_page_size: int = Field(default=10, gt=0)
    max_page_size: int = Field(default=100, gt=0, le=1000)
    default_sort_field: str = "startedAt"
    default_sort_direction: str = "DESC"
    csv_encoding: str = "utf-8-sig"
    batch_size: int = Field(default=500, gt=0, description="Employees fetched per query while rendering CSV")
    temp_dir: Optional[Path] = Field(default=None, description="Staging directory for CSV files (None = system temp)")
    recover_interrupted_on_startup: bool = Field(
        default=False,
        description="Fail stale IN_PROGRESS backups before running (same as --recover)"
    )
    recover_stale_after_minutes: int = Field(
        default=60,
        gt=0,
        description="Only IN_PROGRESS backups started at least this long ago are recovered"
    )

    @field_validator('default_sort_field')
    @classmethod
    def validate_sort_field(cls, v: str) -> str:
        if v not in SORT_FIELD_ALIASES:
            raise ValueError(f"default_sort_field must be one of {sorted(SORT_FIELD_ALIASES)}")
        return v

    @field_validator('default_sort_direction')
    @classmethod
    def validate_sort_direction(cls, v: str) -> str:
        if v.upper() not in SORT_DIRECTIONS:
            raise ValueError("default_sort_direction must be ASC or DESC")
        return v.upper()

    @model_validator(mode='after')
    def validate_page_sizes(self):
        if self.default_page_size > self.max_page_size:
            raise ValueError('default_page_size cannot exceed max_page_size')
        return self


class PathsConfig(BaseModel):
    """File path configuration."""

    data: Path = Path("data")

    @field_validator('data')
    @classmethod
    def validate_path(cls, v: Path) -> Path:
        """Ensure paths are cross-platform."""
        return Path(v)


class SystemConfig(BaseModel):
    """Top-level system configuration (config/system.yaml)."""

    debug: bool = False
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
