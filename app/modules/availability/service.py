"""Availability business logic: tutor windows and slot projection."""

from __future__ import annotations

import datetime as dt
import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import AvailabilityContainmentEnum, RoleEnum
from app.modules.availability.models import AvailabilityWindow
from app.modules.availability.repository import AvailabilityRepository
from app.modules.availability.schemas import (
    AvailabilityWindowCreate,
    AvailabilityWindowUpdate,
    SlotRead,
)
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.sessions.repository import SessionsRepository
from app.shared.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.shared.time_utils import (
    combine_date_and_time,
    day_of_week,
    format_date,
    generate_slots,
    is_end_after_start,
    parse_date,
    periods_overlap,
    time_of_day,
    time_to_minutes,
    validate_date_format,
    validate_time_format,
)

settings = get_settings()
logger = logging.getLogger(__name__)

INVALID_TIME_MESSAGE = "Invalid time format. Use HH:MM in 24-hour format."
INVALID_DATE_MESSAGE = "Invalid date format. Use YYYY-MM-DD."


def _validate_times(start_time: object, end_time: object) -> None:
    if not validate_time_format(start_time) or not validate_time_format(end_time):
        raise ValidationException(INVALID_TIME_MESSAGE)
    if not is_end_after_start(start_time, end_time):
        raise ValidationException("End time must be after start time.")


def _resolve_recurrence(
    is_recurring: bool,
    day: int | None,
    date_str: str | None,
) -> tuple[int, dt.date | None]:
    """Return ``(day_of_week, date)`` for a well-formed window shape."""
    if is_recurring:
        if date_str is not None:
            raise ValidationException("Recurring availability cannot be bound to a specific date.")
        if day is None:
            raise ValidationException("Day of week is required for recurring availability.")
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise ValidationException("Day of week must be between 0 (Sunday) and 6 (Saturday).")
        return day, None

    if date_str is None:
        raise ValidationException("Date is required for non-recurring availability.")
    if not validate_date_format(date_str):
        raise ValidationException(INVALID_DATE_MESSAGE)
    window_date = parse_date(date_str)
    derived_day = day_of_week(window_date)
    if day is not None and day != derived_day:
        raise ValidationException("Day of week does not match the given date.")
    return derived_day, window_date


class AvailabilityService:
    """Tutor availability store and slot projection."""

    def __init__(
        self,
        repository: AvailabilityRepository,
        identity_repository: IdentityRepository,
        sessions_repository: SessionsRepository,
        *,
        tz: dt.tzinfo | None = None,
        slot_interval_minutes: int | None = None,
        containment: AvailabilityContainmentEnum | None = None,
    ) -> None:
        self.repository = repository
        self.identity_repository = identity_repository
        self.sessions_repository = sessions_repository
        self.tz = tz or settings.tzinfo
        self.slot_interval_minutes = slot_interval_minutes or settings.slot_interval_minutes
        self.containment = containment or settings.availability_containment

    async def _get_owned_window(self, window_id: UUID, actor: User) -> AvailabilityWindow:
        window = await self.repository.get_window_by_id(window_id)
        if window is None:
            raise NotFoundException("Availability not found.")
        if window.tutor_id != actor.id:
            raise ForbiddenException("Not authorized to modify this availability.")
        return window

    async def _get_tutor(self, tutor_id: UUID) -> User:
        tutor = await self.identity_repository.get_user_by_id(tutor_id)
        if tutor is None or tutor.role != RoleEnum.TUTOR:
            raise NotFoundException("Tutor not found.")
        return tutor

    async def add_window(self, payload: AvailabilityWindowCreate, actor: User) -> AvailabilityWindow:
        """Declare a new availability window for the acting tutor."""
        if actor.role != RoleEnum.TUTOR:
            raise ForbiddenException("Only tutors can add availability.")

        _validate_times(payload.start_time, payload.end_time)
        day, window_date = _resolve_recurrence(payload.is_recurring, payload.day_of_week, payload.date)

        window = await self.repository.create_window(
            tutor_id=actor.id,
            day_of_week=day,
            window_date=window_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            is_recurring=payload.is_recurring,
        )
        logger.info("Tutor %s added availability window %s", actor.id, window.id)
        return window

    async def update_window(
        self,
        window_id: UUID,
        payload: AvailabilityWindowUpdate,
        actor: User,
    ) -> AvailabilityWindow:
        """Patch a window owned by the acting tutor, re-validating merged fields."""
        window = await self._get_owned_window(window_id, actor)
        patch = payload.model_dump(exclude_unset=True)

        start_time = patch.get("start_time") or window.start_time
        end_time = patch.get("end_time") or window.end_time
        _validate_times(start_time, end_time)

        is_recurring = patch["is_recurring"] if patch.get("is_recurring") is not None else window.is_recurring
        if is_recurring:
            day = patch["day_of_week"] if patch.get("day_of_week") is not None else window.day_of_week
            date_str = patch.get("date")
        else:
            day = patch.get("day_of_week")
            date_str = patch.get("date")
            if date_str is None and window.date is not None:
                date_str = format_date(window.date)
        day, window_date = _resolve_recurrence(is_recurring, day, date_str)

        updated = await self.repository.update_window(
            window,
            day_of_week=day,
            date=window_date,
            start_time=start_time,
            end_time=end_time,
            is_recurring=is_recurring,
        )
        logger.info("Tutor %s updated availability window %s", actor.id, window.id)
        return updated

    async def remove_window(self, window_id: UUID, actor: User) -> None:
        """Delete a window owned by the acting tutor. Booked sessions are kept."""
        window = await self._get_owned_window(window_id, actor)
        await self.repository.delete_window(window)
        logger.info("Tutor %s removed availability window %s", actor.id, window_id)

    async def list_my_windows(self, actor: User) -> list[AvailabilityWindow]:
        """List windows of the acting tutor."""
        if actor.role != RoleEnum.TUTOR:
            raise ForbiddenException("Only tutors can access their availability.")
        return await self.repository.list_windows_for_tutor(actor.id)

    async def list_tutor_windows(self, tutor_id: UUID) -> list[AvailabilityWindow]:
        """List windows of any tutor (public)."""
        await self._get_tutor(tutor_id)
        return await self.repository.list_windows_for_tutor(tutor_id)

    def _window_contains(
        self,
        window: AvailabilityWindow,
        local_start: dt.datetime,
        local_end: dt.datetime,
    ) -> bool:
        window_start = time_to_minutes(window.start_time)
        window_end = time_to_minutes(window.end_time)
        start_minutes = time_to_minutes(time_of_day(local_start))

        if self.containment == AvailabilityContainmentEnum.START:
            return window_start <= start_minutes <= window_end

        if local_end.date() != local_start.date():
            return False
        end_minutes = time_to_minutes(time_of_day(local_end))
        return window_start <= start_minutes and end_minutes <= window_end

    async def is_available(self, tutor_id: UUID, start_at: dt.datetime, end_at: dt.datetime) -> bool:
        """Return True when the interval fits a recurring or date-specific window.

        With ``start`` containment only the start time-of-day is matched
        against the window; with ``interval`` containment the whole interval
        must fit inside a single window on the same local date.
        """
        local_start = start_at.astimezone(self.tz)
        local_end = end_at.astimezone(self.tz)
        windows = await self.repository.list_windows_for_day(
            tutor_id,
            day_of_week(local_start),
            local_start.date(),
        )
        # Recurring windows are checked before date-specific ones.
        windows.sort(key=lambda window: not window.is_recurring)
        return any(self._window_contains(window, local_start, local_end) for window in windows)

    async def list_slots_for_date(self, tutor_id: UUID, date_str: str) -> list[SlotRead]:
        """Project tutor windows on ``date_str`` into fixed-size bookable slots."""
        if not validate_date_format(date_str):
            raise ValidationException(INVALID_DATE_MESSAGE)
        await self._get_tutor(tutor_id)

        selected_date = parse_date(date_str)
        windows = await self.repository.list_windows_for_day(
            tutor_id,
            day_of_week(selected_date),
            selected_date,
        )
        if not windows:
            return []

        day_start = combine_date_and_time(date_str, "00:00", self.tz)
        next_day = format_date(selected_date + dt.timedelta(days=1))
        day_end = combine_date_and_time(next_day, "00:00", self.tz)
        booked = await self.sessions_repository.list_active_sessions_between(tutor_id, day_start, day_end)

        interval = dt.timedelta(minutes=self.slot_interval_minutes)
        slots: dict[str, bool] = {}
        for window in windows:
            for slot_time in generate_slots(window.start_time, window.end_time, self.slot_interval_minutes):
                slot_start = combine_date_and_time(date_str, slot_time, self.tz)
                slot_end = slot_start + interval
                is_free = not any(
                    periods_overlap(slot_start, slot_end, session.start_at, session.end_at)
                    for session in booked
                )
                slots[slot_time] = slots.get(slot_time, True) and is_free

        return [
            SlotRead(time=slot_time, available=available)
            for slot_time, available in sorted(slots.items(), key=lambda item: time_to_minutes(item[0]))
        ]


async def get_availability_service(session: AsyncSession = Depends(get_db_session)) -> AvailabilityService:
    """Dependency provider for availability service."""
    return AvailabilityService(
        repository=AvailabilityRepository(session),
        identity_repository=IdentityRepository(session),
        sessions_repository=SessionsRepository(session),
    )
