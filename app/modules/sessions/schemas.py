"""Session schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import SessionStatusEnum


class SessionBookRequest(BaseModel):
    """Book a session request; date and times are wall-clock strings."""

    course_id: UUID
    start_date: str
    start_time: str
    end_time: str


class SessionStatusUpdate(BaseModel):
    """Status transition request."""

    status: SessionStatusEnum
    meeting_link: str | None = Field(default=None, max_length=1024)


class FeedbackCreate(BaseModel):
    """Student feedback for a completed session."""

    # 1..5 range enforced by the service.
    rating: int = Field(strict=True)
    comment: str | None = None


class NotesUpdate(BaseModel):
    notes: str | None = None


class SessionRead(BaseModel):
    """Session response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    tutor_id: UUID
    student_id: UUID
    start_at: datetime
    end_at: datetime
    status: SessionStatusEnum
    meeting_link: str | None
    notes: str | None
    feedback_rating: int | None
    feedback_comment: str | None
    feedback_submitted_at: datetime | None
    reminder_sent: bool
    created_at: datetime
    updated_at: datetime


class ReminderSweepResult(BaseModel):
    """Outcome of one reminder sweep."""

    success: bool
    count: int
    failed: int = 0
    message: str | None = None
