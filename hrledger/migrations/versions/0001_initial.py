"""Initial attendance and leave ledger schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM(
    "ADMIN",
    "HR",
    "BA",
    "PA",
    "EMPLOYEE",
    "INTERN",
    "TEAM_COORDINATOR",
    name="user_role",
    create_type=False,
)
attendance_status = postgresql.ENUM(
    "PRESENT",
    "ABSENT",
    "LEAVE",
    "WFH",
    name="attendance_status",
    create_type=False,
)
request_status = postgresql.ENUM(
    "PENDING",
    "APPROVED",
    "REJECTED",
    name="request_status",
    create_type=False,
)
audit_actor_type = postgresql.ENUM(
    "USER",
    "SYSTEM",
    name="audit_actor_type",
    create_type=False,
)


def _request_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=False),
        sa.Column("status", request_status, nullable=False, server_default=sa.text("'PENDING'")),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    user_role.create(bind, checkfirst=True)
    attendance_status.create(bind, checkfirst=True)
    request_status.create(bind, checkfirst=True)
    audit_actor_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default=sa.text("'EMPLOYEE'")),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "attendance_days",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("status", attendance_status, nullable=False, server_default=sa.text("'PRESENT'")),
        sa.Column("total_hours", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("overtime_hours", sa.Numeric(12, 6), nullable=False, server_default=sa.text("0")),
        sa.Column("is_overtime", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "work_date", name="uq_attendance_days_user_id_work_date"),
    )
    op.create_index("ix_attendance_days_user_id", "attendance_days", ["user_id"], unique=False)
    op.create_index("ix_attendance_days_work_date", "attendance_days", ["work_date"], unique=False)

    op.create_table(
        "attendance_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("attendance_day_id", sa.Integer(), nullable=False),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hours_worked", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_overtime", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("overtime_hours", sa.Numeric(12, 6), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["attendance_day_id"], ["attendance_days.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_attendance_sessions_attendance_day_id",
        "attendance_sessions",
        ["attendance_day_id"],
        unique=False,
    )
    op.create_index(
        "uq_attendance_sessions_open_per_day",
        "attendance_sessions",
        ["attendance_day_id"],
        unique=True,
        postgresql_where=sa.text("check_out IS NULL"),
        sqlite_where=sa.text("check_out IS NULL"),
    )

    op.create_table(
        "leave_requests",
        *_request_columns(),
        sa.Column("is_loss_of_pay", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("decided_by_user_id", sa.Integer(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["decided_by_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_leave_requests_user_id", "leave_requests", ["user_id"], unique=False)

    op.create_table(
        "wfh_requests",
        *_request_columns(),
        sa.Column("decided_by_user_id", sa.Integer(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["decided_by_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_wfh_requests_user_id", "wfh_requests", ["user_id"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "ts_utc",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("details", sa.JSON(), nullable=False),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_wfh_requests_user_id", table_name="wfh_requests")
    op.drop_table("wfh_requests")
    op.drop_index("ix_leave_requests_user_id", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index("uq_attendance_sessions_open_per_day", table_name="attendance_sessions")
    op.drop_index("ix_attendance_sessions_attendance_day_id", table_name="attendance_sessions")
    op.drop_table("attendance_sessions")
    op.drop_index("ix_attendance_days_work_date", table_name="attendance_days")
    op.drop_index("ix_attendance_days_user_id", table_name="attendance_days")
    op.drop_table("attendance_days")
    op.drop_table("users")

    bind = op.get_bind()
    audit_actor_type.drop(bind, checkfirst=True)
    request_status.drop(bind, checkfirst=True)
    attendance_status.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
