"""Materialized view definitions, runs and job queue

Revision ID: 20261017_01
Revises: None
Create Date: 2026-10-17
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261017_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "mat_view_definitions",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("sql", sa.Text(), nullable=False),
        sa.Column("refresh_strategy", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "unique_index_columns",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "dependencies",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("schedule_cron", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("name", name="uq_mat_view_definitions_name"),
        sa.CheckConstraint("name ~ '^[A-Za-z_][A-Za-z0-9_]*$'", name="ck_mat_view_definitions_name_format"),
        sa.CheckConstraint("refresh_strategy IN (0, 1, 2)", name="ck_mat_view_definitions_refresh_strategy"),
        sa.CheckConstraint(
            "refresh_strategy <> 1 OR jsonb_array_length(unique_index_columns) > 0",
            name="ck_mat_view_definitions_concurrent_requires_unique_columns",
        ),
    )

    op.create_table(
        "mat_view_runs",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column(
            "definition_id",
            sa.BigInteger(),
            sa.ForeignKey("mat_view_definitions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("operation", sa.SmallInteger(), nullable=False),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("error", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "meta",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("operation IN (0, 1, 2)", name="ck_mat_view_runs_operation"),
        sa.CheckConstraint("status IN (0, 1, 2, 3)", name="ck_mat_view_runs_status"),
        sa.CheckConstraint(
            "(status IN (2, 3)) = (finished_at IS NOT NULL AND duration_ms IS NOT NULL)",
            name="ck_mat_view_runs_terminal_timing",
        ),
        sa.CheckConstraint("duration_ms IS NULL OR duration_ms >= 0", name="ck_mat_view_runs_duration_non_negative"),
        sa.CheckConstraint("error IS NULL OR status = 3", name="ck_mat_view_runs_error_only_when_failed"),
    )
    op.create_index("ix_mat_view_runs_definition_started_at", "mat_view_runs", ["definition_id", "started_at"])
    op.create_index("ix_mat_view_runs_status", "mat_view_runs", ["status"])

    op.create_table(
        "mat_view_job_queue",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("job_kind", sa.Text(), nullable=False),
        sa.Column("queue_name", sa.Text(), nullable=False),
        sa.Column(
            "args",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("enqueued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "job_kind IN ('create_view', 'refresh_view', 'delete_view')",
            name="ck_mat_view_job_queue_job_kind",
        ),
    )
    op.create_index("ix_mat_view_job_queue_queue_enqueued_at", "mat_view_job_queue", ["queue_name", "enqueued_at"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_mat_view_job_queue_queue_enqueued_at", table_name="mat_view_job_queue")
    op.drop_table("mat_view_job_queue")
    op.drop_index("ix_mat_view_runs_status", table_name="mat_view_runs")
    op.drop_index("ix_mat_view_runs_definition_started_at", table_name="mat_view_runs")
    op.drop_table("mat_view_runs")
    op.drop_table("mat_view_definitions")
