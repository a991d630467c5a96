"""Availability repository layer."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import touch
from app.modules.availability.models import AvailabilityWindow


class AvailabilityRepository:
    """DB access for tutor availability windows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_window(
        self,
        tutor_id: UUID,
        day_of_week: int | None,
        window_date: date | None,
        start_time: str,
        end_time: str,
        is_recurring: bool,
    ) -> AvailabilityWindow:
        window = AvailabilityWindow(
            tutor_id=tutor_id,
            day_of_week=day_of_week,
            date=window_date,
            start_time=start_time,
            end_time=end_time,
            is_recurring=is_recurring,
        )
        self.session.add(window)
        await self.session.flush()
        return window

    async def get_window_by_id(self, window_id: UUID) -> AvailabilityWindow | None:
        stmt = select(AvailabilityWindow).where(AvailabilityWindow.id == window_id)
        return await self.session.scalar(stmt)

    async def list_windows_for_tutor(self, tutor_id: UUID) -> list[AvailabilityWindow]:
        stmt = (
            select(AvailabilityWindow)
            .where(AvailabilityWindow.tutor_id == tutor_id)
            .order_by(
                AvailabilityWindow.is_recurring.desc(),
                AvailabilityWindow.day_of_week.asc(),
                AvailabilityWindow.date.asc(),
                AvailabilityWindow.start_time.asc(),
            )
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_windows_for_day(
        self,
        tutor_id: UUID,
        day_of_week: int,
        on_date: date,
    ) -> list[AvailabilityWindow]:
        """Return recurring windows for the weekday plus one-off windows for the date."""
        stmt = select(AvailabilityWindow).where(
            AvailabilityWindow.tutor_id == tutor_id,
            or_(
                and_(
                    AvailabilityWindow.is_recurring.is_(True),
                    AvailabilityWindow.day_of_week == day_of_week,
                ),
                and_(
                    AvailabilityWindow.is_recurring.is_(False),
                    AvailabilityWindow.date == on_date,
                ),
            ),
        )
        return list((await self.session.scalars(stmt)).all())

    async def update_window(self, window: AvailabilityWindow, **changes) -> AvailabilityWindow:
        for key, value in changes.items():
            setattr(window, key, value)
        touch(window)
        await self.session.flush()
        return window

    async def delete_window(self, window: AvailabilityWindow) -> None:
        await self.session.delete(window)
        await self.session.flush()
