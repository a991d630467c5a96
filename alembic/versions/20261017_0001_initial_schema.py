"""Initial schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_enum = sa.Enum("student", "tutor", "admin", name="role_enum", native_enum=False)
session_status_enum = sa.Enum(
    "pending",
    "confirmed",
    "cancelled",
    "completed",
    name="session_status_enum",
    native_enum=False,
)
notification_type_enum = sa.Enum(
    "session_request",
    "session_update",
    "session_feedback",
    "session_reminder",
    name="notification_type_enum",
    native_enum=False,
)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.create_table(
        "users",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=False)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "courses",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("tutor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["tutor_id"], ["users.id"], name="fk_courses_tutor_id_users", ondelete="CASCADE"),
    )
    op.create_index("ix_courses_tutor_id", "courses", ["tutor_id"], unique=False)

    op.create_table(
        "availability_windows",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("tutor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["tutor_id"],
            ["users.id"],
            name="fk_availability_windows_tutor_id_users",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_availability_windows_day_of_week_range",
        ),
        sa.CheckConstraint(
            "(is_recurring AND day_of_week IS NOT NULL AND date IS NULL) "
            "OR (NOT is_recurring AND date IS NOT NULL)",
            name="ck_availability_windows_recurrence_shape",
        ),
        sa.CheckConstraint("start_time < end_time", name="ck_availability_windows_start_before_end"),
    )
    op.create_index("ix_availability_windows_tutor_id", "availability_windows", ["tutor_id"], unique=False)
    op.create_index("ix_availability_windows_date", "availability_windows", ["date"], unique=False)

    op.create_table(
        "sessions",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tutor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", session_status_enum, nullable=False),
        sa.Column("meeting_link", sa.String(length=1024), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("feedback_rating", sa.Integer(), nullable=True),
        sa.Column("feedback_comment", sa.Text(), nullable=True),
        sa.Column("feedback_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], name="fk_sessions_course_id_courses", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tutor_id"], ["users.id"], name="fk_sessions_tutor_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"], name="fk_sessions_student_id_users", ondelete="CASCADE"),
        sa.CheckConstraint("start_at < end_at", name="ck_sessions_start_before_end"),
        sa.CheckConstraint(
            "feedback_rating IS NULL OR (feedback_rating >= 1 AND feedback_rating <= 5)",
            name="ck_sessions_feedback_rating_range",
        ),
    )
    op.create_index("ix_sessions_course_id", "sessions", ["course_id"], unique=False)
    op.create_index("ix_sessions_student_id", "sessions", ["student_id"], unique=False)
    op.create_index("ix_sessions_status", "sessions", ["status"], unique=False)
    op.create_index("ix_sessions_tutor_id_start_at", "sessions", ["tutor_id", "start_at"], unique=False)
    # Active sessions of one tutor never overlap; touching intervals are allowed.
    op.execute(
        """
        ALTER TABLE sessions
        ADD CONSTRAINT ex_sessions_tutor_active_overlap
        EXCLUDE USING gist (
            tutor_id WITH =,
            tstzrange(start_at, end_at, '[)') WITH &&
        )
        WHERE (status IN ('pending', 'confirmed'))
        """,
    )

    op.create_table(
        "notifications",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", notification_type_enum, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_session_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["recipient_id"],
            ["users.id"],
            name="fk_notifications_recipient_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["related_session_id"],
            ["sessions.id"],
            name="fk_notifications_related_session_id_sessions",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"], unique=False)
    op.create_index("ix_notifications_related_session_id", "notifications", ["related_session_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_notifications_related_session_id", table_name="notifications")
    op.drop_index("ix_notifications_recipient_id", table_name="notifications")
    op.drop_table("notifications")

    op.execute("ALTER TABLE sessions DROP CONSTRAINT IF EXISTS ex_sessions_tutor_active_overlap")
    op.drop_index("ix_sessions_tutor_id_start_at", table_name="sessions")
    op.drop_index("ix_sessions_status", table_name="sessions")
    op.drop_index("ix_sessions_student_id", table_name="sessions")
    op.drop_index("ix_sessions_course_id", table_name="sessions")
    op.drop_table("sessions")

    op.drop_index("ix_availability_windows_date", table_name="availability_windows")
    op.drop_index("ix_availability_windows_tutor_id", table_name="availability_windows")
    op.drop_table("availability_windows")

    op.drop_index("ix_courses_tutor_id", table_name="courses")
    op.drop_table("courses")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
