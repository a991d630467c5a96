"""Identity ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum as SAEnum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import RoleEnum, enum_values

if TYPE_CHECKING:
    from app.modules.availability.models import AvailabilityWindow
    from app.modules.courses.models import Course
    from app.modules.notifications.models import Notification


class User(BaseModelMixin, Base):
    """Platform user; role is one of a closed set of variants."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    role: Mapped[RoleEnum] = mapped_column(
        SAEnum(RoleEnum, name="role_enum", native_enum=False, values_callable=enum_values),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    courses: Mapped[list["Course"]] = relationship(back_populates="tutor")
    availability_windows: Mapped[list["AvailabilityWindow"]] = relationship(
        back_populates="tutor",
        cascade="all, delete-orphan",
    )
    notifications: Mapped[list["Notification"]] = relationship(back_populates="recipient")
