"""Availability schemas."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, ConfigDict

# Times ("HH:MM") and dates ("YYYY-MM-DD") are plain strings validated by the service.


class AvailabilityWindowCreate(BaseModel):
    """Create availability window request."""

    day_of_week: int | None = None
    date: str | None = None
    start_time: str
    end_time: str
    is_recurring: bool = True


class AvailabilityWindowUpdate(BaseModel):
    """Partial update of an availability window."""

    day_of_week: int | None = None
    date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_recurring: bool | None = None


class AvailabilityWindowRead(BaseModel):
    """Availability window response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tutor_id: UUID
    day_of_week: int | None
    date: dt.date | None
    start_time: str
    end_time: str
    is_recurring: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class SlotRead(BaseModel):
    """Bookable slot of a tutor on one date."""

    time: str
    available: bool


class MessageRead(BaseModel):
    """Plain acknowledgement."""

    message: str
