"""Tutoring session ORM models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import SessionStatusEnum, enum_values

if TYPE_CHECKING:
    from app.modules.courses.models import Course
    from app.modules.identity.models import User


class TutoringSession(BaseModelMixin, Base):
    """Session booked by a student with the tutor of a course."""

    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint("start_at < end_at", name="start_before_end"),
        CheckConstraint(
            "feedback_rating IS NULL OR (feedback_rating >= 1 AND feedback_rating <= 5)",
            name="feedback_rating_range",
        ),
        Index("ix_sessions_tutor_id_start_at", "tutor_id", "start_at"),
    )

    course_id: Mapped[UUID] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    tutor_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[SessionStatusEnum] = mapped_column(
        SAEnum(SessionStatusEnum, name="session_status_enum", native_enum=False, values_callable=enum_values),
        default=SessionStatusEnum.PENDING,
        nullable=False,
        index=True,
    )

    meeting_link: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    feedback_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback_submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    course: Mapped["Course"] = relationship()
    tutor: Mapped["User"] = relationship(foreign_keys=[tutor_id])
    student: Mapped["User"] = relationship(foreign_keys=[student_id])
