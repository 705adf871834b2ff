"""Create roster, change log, binary content and backup tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

IN_PROGRESS_ONLY = sa.text("status = 'IN_PROGRESS'")


def upgrade():
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("employee_number", sa.String(length=50), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("position", sa.String(length=100), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
    )

    op.create_table(
        "employee_change_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("employee_number", sa.String(length=50), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=100), nullable=True),
        sa.Column("at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_employee_change_logs_at", "employee_change_logs", ["at"])

    op.create_table(
        "binary_contents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("content_type", sa.String(length=100), nullable=True),
        sa.Column("size", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "backups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("worker", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("binary_contents.id"), nullable=True, unique=True),
        sa.Column("error_log_id", sa.Integer(), sa.ForeignKey("binary_contents.id"), nullable=True, unique=True),
        sa.CheckConstraint(
            "(status = 'IN_PROGRESS' AND ended_at IS NULL) OR (status != 'IN_PROGRESS' AND ended_at IS NOT NULL)",
            name="ck_backups_ended_at_matches_status",
        ),
    )
    op.create_index("ix_backups_status", "backups", ["status"])
    op.create_index("ix_backups_started_at", "backups", ["started_at"])
    op.create_index("ix_backups_ended_at", "backups", ["ended_at"])
    # At most one running backup across the whole table
    op.create_index(
        "uq_backups_single_in_progress",
        "backups",
        ["status"],
        unique=True,
        sqlite_where=IN_PROGRESS_ONLY,
        postgresql_where=IN_PROGRESS_ONLY,
    )


def downgrade():
    op.drop_index("uq_backups_single_in_progress", table_name="backups")
    op.drop_index("ix_backups_ended_at", table_name="backups")
    op.drop_index("ix_backups_started_at", table_name="backups")
    op.drop_index("ix_backups_status", table_name="backups")
    op.drop_table("backups")
    op.drop_table("binary_contents")
    op.drop_index("ix_employee_change_logs_at", table_name="employee_change_logs")
    op.drop_table("employee_change_logs")
    op.drop_table("employees")
