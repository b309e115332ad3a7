"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM(
    "admin", "manager", "employee", "consultant", "vendor", name="user_role", create_type=False
)
user_status = postgresql.ENUM("active", "inactive", "suspended", name="user_status", create_type=False)
project_status = postgresql.ENUM(
    "planning", "in_progress", "on_hold", "completed", "cancelled", name="project_status", create_type=False
)
task_status = postgresql.ENUM(
    "new", "to_do", "in_progress", "review", "on_hold", "completed", "cancelled",
    name="task_status",
    create_type=False,
)
priority_level = postgresql.ENUM("low", "medium", "high", "urgent", name="priority_level", create_type=False)
reply_status = postgresql.ENUM("pending", "replied", name="reply_status", create_type=False)

ENUM_TYPES = (user_role, user_status, project_status, task_status, priority_level, reply_status)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    for enum_type in ENUM_TYPES:
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("status", user_status, nullable=False, server_default="active"),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("position", sa.String(length=100), nullable=True),
        sa.Column("working_for", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("working_for IS NULL OR working_for <> id", name="ck_users_working_for_not_self"),
    )
    op.create_index("ix_users_working_for", "users", ["working_for"])
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("contact_person", sa.String(length=100), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=50), nullable=True),
        sa.Column("service_type", sa.String(length=100), nullable=True),
        sa.Column("contract_start_date", sa.Date(), nullable=True),
        sa.Column("contract_end_date", sa.Date(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "consultants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("specialization", sa.String(length=100), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", project_status, nullable=False, server_default="planning"),
        sa.Column("priority", priority_level, nullable=False, server_default="medium"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("budget", sa.Numeric(15, 2), nullable=True),
        sa.Column("project_type", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="ck_projects_dates",
        ),
    )
    op.create_index("ix_projects_manager_id", "projects", ["manager_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", task_status, nullable=False, server_default="new"),
        sa.Column("priority", priority_level, nullable=False, server_default="medium"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("estimated_hours", sa.Numeric(5, 2), nullable=True),
        sa.Column("actual_hours", sa.Numeric(5, 2), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])

    op.create_table(
        "task_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_assignments_task_user"),
    )
    op.create_index("ix_task_assignments_user_id", "task_assignments", ["user_id"])
    op.create_index("ix_task_assignments_task_id", "task_assignments", ["task_id"])

    op.create_table(
        "daily_updates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("update_date", sa.Date(), nullable=False),
        sa.Column("hours_spent", sa.Numeric(5, 2), nullable=False),
        sa.Column("work_done", sa.Text(), nullable=False),
        sa.Column("challenges", sa.Text(), nullable=True),
        sa.Column("task_status", task_status, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "task_id", "update_date", name="uq_daily_updates_user_task_date"),
    )
    op.create_index("ix_daily_updates_user_id", "daily_updates", ["user_id"])
    op.create_index("ix_daily_updates_task_id", "daily_updates", ["task_id"])
    op.create_index("ix_daily_updates_update_date", "daily_updates", ["update_date"])

    op.create_table(
        "task_comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "parent_id",
            sa.Integer(),
            sa.ForeignKey("task_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reply_status", reply_status, nullable=False, server_default="pending"),
        *_timestamps(),
    )
    op.create_index("ix_task_comments_task_id", "task_comments", ["task_id"])

    op.create_table(
        "user_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_logs_user_id", "user_logs", ["user_id"])
    op.create_index("ix_user_logs_created_at", "user_logs", ["created_at"])

    for table_name, owner_column, owner_table in (
        ("project_logs", "project_id", "projects"),
        ("task_logs", "task_id", "tasks"),
    ):
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                owner_column,
                sa.Integer(),
                sa.ForeignKey(f"{owner_table}.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("action", sa.String(length=64), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index(f"ix_{table_name}_{owner_column}", table_name, [owner_column])


def downgrade() -> None:
    op.drop_index("ix_task_logs_task_id", table_name="task_logs")
    op.drop_table("task_logs")
    op.drop_index("ix_project_logs_project_id", table_name="project_logs")
    op.drop_table("project_logs")

    op.drop_index("ix_user_logs_created_at", table_name="user_logs")
    op.drop_index("ix_user_logs_user_id", table_name="user_logs")
    op.drop_table("user_logs")

    op.drop_index("ix_task_comments_task_id", table_name="task_comments")
    op.drop_table("task_comments")

    op.drop_index("ix_daily_updates_update_date", table_name="daily_updates")
    op.drop_index("ix_daily_updates_task_id", table_name="daily_updates")
    op.drop_index("ix_daily_updates_user_id", table_name="daily_updates")
    op.drop_table("daily_updates")

    op.drop_index("ix_task_assignments_task_id", table_name="task_assignments")
    op.drop_index("ix_task_assignments_user_id", table_name="task_assignments")
    op.drop_table("task_assignments")

    op.drop_index("ix_tasks_due_date", table_name="tasks")
    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_projects_manager_id", table_name="projects")
    op.drop_table("projects")
    op.drop_table("consultants")
    op.drop_table("vendors")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_working_for", table_name="users")
    op.drop_table("users")

    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(op.get_bind(), checkfirst=True)
