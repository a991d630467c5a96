"""Availability ORM models."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin

if TYPE_CHECKING:
    from app.modules.identity.models import User


class AvailabilityWindow(BaseModelMixin, Base):
    """Tutor-declared window: weekly recurring or bound to one calendar date."""

    __tablename__ = "availability_windows"
    __table_args__ = (
        CheckConstraint("day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)", name="day_of_week_range"),
        CheckConstraint(
            "(is_recurring AND day_of_week IS NOT NULL AND date IS NULL) "
            "OR (NOT is_recurring AND date IS NOT NULL)",
            name="recurrence_shape",
        ),
        CheckConstraint("start_time < end_time", name="start_before_end"),
    )

    tutor_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # 0 = Sunday ... 6 = Saturday; derived from ``date`` for one-off windows.
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    tutor: Mapped["User"] = relationship(back_populates="availability_windows")
