"""Create meetings and tasks tables.

Revision ID: 001_meetings_and_tasks
Revises:
Create Date: 2026-10-19

- meetings: one row per uploaded recording, with nullable pipeline
  outputs (transcript, minutes, summary, task_ids_data) and the failure
  marker columns (processing_error, failed_stage)
- tasks: tracked tasks; source_meeting is a plain column with no
  foreign key, so deleting a meeting leaves its generated tasks alone
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_meetings_and_tasks"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── meetings table ───────────────────────────────────────────────────

    op.create_table(
        "meetings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recording_url", sa.String(1000), nullable=True),
        sa.Column(
            "participants_data",
            sa.JSON(),
            server_default=sa.text("'[]'"),
            nullable=False,
        ),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("minutes", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column(
            "task_ids_data",
            sa.JSON(),
            server_default=sa.text("'[]'"),
            nullable=False,
        ),
        sa.Column("processing_error", sa.Text(), nullable=True),
        sa.Column("failed_stage", sa.String(50), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_index(
        "ix_meetings_project_date",
        "meetings",
        ["project_id", "date"],
    )

    # ── tasks table ──────────────────────────────────────────────────────

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("owner", sa.String(255), nullable=True),
        sa.Column(
            "status",
            sa.String(50),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("deadline", sa.String(255), nullable=True),
        sa.Column(
            "priority",
            sa.String(20),
            server_default=sa.text("'medium'"),
            nullable=False,
        ),
        sa.Column("source_meeting", sa.String(64), nullable=True),
        sa.Column("team", sa.String(64), nullable=True),
        sa.Column(
            "description",
            sa.Text(),
            server_default=sa.text("''"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_index("ix_tasks_source_meeting", "tasks", ["source_meeting"])
    op.create_index("ix_tasks_team", "tasks", ["team"])


def downgrade() -> None:
    op.drop_index("ix_tasks_team", table_name="tasks")
    op.drop_index("ix_tasks_source_meeting", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_meetings_project_date", table_name="meetings")
    op.drop_table("meetings")
