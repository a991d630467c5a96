"""Courses ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin

if TYPE_CHECKING:
    from app.modules.identity.models import User


class Course(BaseModelMixin, Base):
    """Course offered by a single tutor; sessions are booked against it."""

    __tablename__ = "courses"

    tutor_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    tutor: Mapped["User"] = relationship(back_populates="courses")
