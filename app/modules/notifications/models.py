"""Notifications ORM models."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import NotificationTypeEnum, enum_values


class Notification(BaseModelMixin, Base):
    """Notification addressed to one user, optionally about a session."""

    __tablename__ = "notifications"

    recipient_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[NotificationTypeEnum] = mapped_column(
        SAEnum(NotificationTypeEnum, name="notification_type_enum", native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_session_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    recipient = relationship("User", back_populates="notifications")
