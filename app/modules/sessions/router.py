"""Sessions API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import RoleEnum, SessionStatusEnum
from app.modules.identity.service import get_current_user, require_roles
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.service import NotificationDispatcher
from app.modules.sessions.reminders import SessionRemindersWorker
from app.modules.sessions.repository import SessionsRepository
from app.modules.sessions.schemas import (
    FeedbackCreate,
    NotesUpdate,
    ReminderSweepResult,
    SessionBookRequest,
    SessionRead,
    SessionStatusUpdate,
)
from app.modules.sessions.service import SessionsService, get_sessions_service

settings = get_settings()
router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def book_session(
    payload: SessionBookRequest,
    service: SessionsService = Depends(get_sessions_service),
    current_user=Depends(get_current_user),
) -> SessionRead:
    """Book a session with the tutor of a course."""
    tutoring_session = await service.book_session(payload, current_user)
    return SessionRead.model_validate(tutoring_session)


@router.get("", response_model=list[SessionRead])
async def list_my_sessions(
    status_filter: SessionStatusEnum | None = Query(default=None, alias="status"),
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    service: SessionsService = Depends(get_sessions_service),
    current_user=Depends(get_current_user),
) -> list[SessionRead]:
    """List sessions of the current tutor or student."""
    items = await service.list_my_sessions(current_user, status_filter, date_from, date_to)
    return [SessionRead.model_validate(item) for item in items]


@router.post("/send-reminders", response_model=ReminderSweepResult)
async def send_reminders(
    session: AsyncSession = Depends(get_db_session),
    _admin=Depends(require_roles(RoleEnum.ADMIN)),
) -> ReminderSweepResult:
    """Run one reminder sweep synchronously."""
    worker = SessionRemindersWorker(
        sessions_repository=SessionsRepository(session),
        dispatcher=NotificationDispatcher(NotificationsRepository(session)),
        lookahead_hours=settings.reminder_lookahead_hours,
        batch_size=settings.reminder_batch_size,
    )
    stats = await worker.run_once()
    return ReminderSweepResult(**stats)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session(
    session_id: UUID,
    service: SessionsService = Depends(get_sessions_service),
    current_user=Depends(get_current_user),
) -> SessionRead:
    tutoring_session = await service.get_session(session_id, current_user)
    return SessionRead.model_validate(tutoring_session)


@router.put("/{session_id}/status", response_model=SessionRead)
async def update_session_status(
    session_id: UUID,
    payload: SessionStatusUpdate,
    service: SessionsService = Depends(get_sessions_service),
    current_user=Depends(get_current_user),
) -> SessionRead:
    """Confirm, complete or cancel a session."""
    tutoring_session = await service.update_status(session_id, payload, current_user)
    return SessionRead.model_validate(tutoring_session)


@router.post("/{session_id}/feedback", response_model=SessionRead)
async def submit_feedback(
    session_id: UUID,
    payload: FeedbackCreate,
    service: SessionsService = Depends(get_sessions_service),
    current_user=Depends(get_current_user),
) -> SessionRead:
    tutoring_session = await service.submit_feedback(session_id, payload, current_user)
    return SessionRead.model_validate(tutoring_session)


@router.put("/{session_id}/notes", response_model=SessionRead)
async def add_session_notes(
    session_id: UUID,
    payload: NotesUpdate,
    service: SessionsService = Depends(get_sessions_service),
    current_user=Depends(get_current_user),
) -> SessionRead:
    tutoring_session = await service.add_notes(session_id, payload, current_user)
    return SessionRead.model_validate(tutoring_session)
