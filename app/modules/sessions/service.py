"""Session booking business logic: booking, status machine, feedback."""

from __future__ import annotations

import datetime as dt
import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import NotificationTypeEnum, RoleEnum, SessionStatusEnum, TERMINAL_SESSION_STATUSES
from app.core.metrics import record_booking_outcome
from app.modules.availability.service import AvailabilityService, get_availability_service
from app.modules.courses.repository import CoursesRepository
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.service import NotificationDispatcher
from app.modules.sessions.models import TutoringSession
from app.modules.sessions.repository import SessionsRepository
from app.modules.sessions.schemas import (
    FeedbackCreate,
    NotesUpdate,
    SessionBookRequest,
    SessionStatusUpdate,
)
from app.shared.exceptions import (
    AlreadySubmittedException,
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotAvailableException,
    NotFoundException,
    ValidationException,
)
from app.shared.time_utils import (
    combine_date_and_time,
    is_end_after_start,
    utc_now,
    validate_date_format,
    validate_time_format,
)

settings = get_settings()
logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "The selected time conflicts with another booking"


def _course_name(tutoring_session: TutoringSession) -> str:
    course = getattr(tutoring_session, "course", None)
    return course.name if course is not None else "your course"


class SessionsService:
    """Session store with the role-gated status machine."""

    def __init__(
        self,
        sessions_repository: SessionsRepository,
        courses_repository: CoursesRepository,
        identity_repository: IdentityRepository,
        availability_service: AvailabilityService,
        dispatcher: NotificationDispatcher,
        *,
        tz: dt.tzinfo | None = None,
    ) -> None:
        self.sessions_repository = sessions_repository
        self.courses_repository = courses_repository
        self.identity_repository = identity_repository
        self.availability_service = availability_service
        self.dispatcher = dispatcher
        self.tz = tz or settings.tzinfo

    async def _get_session(self, session_id: UUID, *, for_update: bool = False) -> TutoringSession:
        tutoring_session = await self.sessions_repository.get_session_by_id(session_id, for_update=for_update)
        if tutoring_session is None:
            raise NotFoundException("Session not found.")
        return tutoring_session

    @staticmethod
    def _ensure_participant(tutoring_session: TutoringSession, actor: User) -> None:
        if actor.id not in (tutoring_session.tutor_id, tutoring_session.student_id):
            raise ForbiddenException("Not authorized to access this session.")

    async def check_conflict(
        self,
        tutor_id: UUID,
        start_at: dt.datetime,
        end_at: dt.datetime,
        exclude_session_id: UUID | None = None,
    ) -> bool:
        """Return True if the tutor has an active session overlapping the interval."""
        return await self.sessions_repository.check_conflict(tutor_id, start_at, end_at, exclude_session_id)

    async def book_session(self, payload: SessionBookRequest, actor: User) -> TutoringSession:
        """Book a pending session with the tutor of the requested course.

        Availability and conflict checks run before the insert; the conflict
        check and the insert share a per-tutor lock held until commit.
        """
        if actor.role != RoleEnum.STUDENT:
            raise ForbiddenException("Only students can book sessions.")

        if not validate_date_format(payload.start_date):
            raise ValidationException("Invalid date format. Use YYYY-MM-DD.")
        if not validate_time_format(payload.start_time) or not validate_time_format(payload.end_time):
            raise ValidationException("Invalid time format. Use HH:MM in 24-hour format.")
        if not is_end_after_start(payload.start_time, payload.end_time):
            raise ValidationException("End time must be after start time.")

        start_at = combine_date_and_time(payload.start_date, payload.start_time, self.tz)
        end_at = combine_date_and_time(payload.start_date, payload.end_time, self.tz)
        if start_at <= utc_now():
            raise ValidationException("Cannot book a session in the past.")

        course = await self.courses_repository.get_course_by_id(payload.course_id)
        if course is None:
            raise NotFoundException("Course not found.")
        tutor = await self.identity_repository.get_user_by_id(course.tutor_id)
        if tutor is None or tutor.role != RoleEnum.TUTOR:
            raise NotFoundException("Tutor not found.")

        if not await self.availability_service.is_available(tutor.id, start_at, end_at):
            record_booking_outcome("not_available")
            raise NotAvailableException("Tutor is not available at this time.")

        await self.sessions_repository.lock_tutor_schedule(tutor.id)
        if await self.sessions_repository.check_conflict(tutor.id, start_at, end_at):
            record_booking_outcome("conflict")
            raise ConflictException(CONFLICT_MESSAGE)

        try:
            tutoring_session = await self.sessions_repository.create_session(
                course_id=course.id,
                tutor_id=tutor.id,
                student_id=actor.id,
                start_at=start_at,
                end_at=end_at,
            )
        except ConflictException:
            record_booking_outcome("conflict")
            raise

        record_booking_outcome("created")
        logger.info(
            "Student %s booked session %s with tutor %s at %s",
            actor.id,
            tutoring_session.id,
            tutor.id,
            start_at.isoformat(),
        )

        await self.dispatcher.notify(
            recipient_id=tutor.id,
            notification_type=NotificationTypeEnum.SESSION_REQUEST,
            title="New Session Request",
            message=(
                f"You have a new session request for {course.name} "
                f"on {payload.start_date} at {payload.start_time}."
            ),
            related_session_id=tutoring_session.id,
        )
        return tutoring_session

    async def update_status(
        self,
        session_id: UUID,
        payload: SessionStatusUpdate,
        actor: User,
    ) -> TutoringSession:
        """Apply a status transition requested by a participant."""
        tutoring_session = await self._get_session(session_id, for_update=True)
        self._ensure_participant(tutoring_session, actor)
        is_tutor = actor.id == tutoring_session.tutor_id

        current = tutoring_session.status
        if current in TERMINAL_SESSION_STATUSES:
            raise InvalidTransitionException(f"Cannot change status of a {current.value} session.")

        target = payload.status
        if target == SessionStatusEnum.CONFIRMED:
            if not is_tutor:
                raise ForbiddenException("Only the tutor can confirm a session.")
            if current != SessionStatusEnum.PENDING:
                raise InvalidTransitionException("Only pending sessions can be confirmed.")
        elif target == SessionStatusEnum.COMPLETED:
            if not is_tutor:
                raise ForbiddenException("Only the tutor can mark a session as completed.")
            if current != SessionStatusEnum.CONFIRMED:
                raise InvalidTransitionException("Only confirmed sessions can be completed.")
            if utc_now() < tutoring_session.end_at:
                raise ValidationException("Cannot complete a session before it ends.")
        elif target != SessionStatusEnum.CANCELLED:
            raise InvalidTransitionException(f"Cannot move a session to {target.value}.")

        tutoring_session.status = target
        if payload.meeting_link is not None:
            tutoring_session.meeting_link = payload.meeting_link
        await self.sessions_repository.save(tutoring_session)
        logger.info("Session %s moved %s -> %s by %s", tutoring_session.id, current.value, target.value, actor.id)

        course_name = _course_name(tutoring_session)
        if target == SessionStatusEnum.CONFIRMED:
            message = f"Your session for {course_name} has been confirmed by the tutor."
        elif target == SessionStatusEnum.COMPLETED:
            message = f"Your session for {course_name} has been marked as completed. Please provide feedback."
        else:
            cancelled_by = "tutor" if is_tutor else "student"
            message = f"Your session for {course_name} has been cancelled by the {cancelled_by}."

        await self.dispatcher.notify(
            recipient_id=tutoring_session.student_id if is_tutor else tutoring_session.tutor_id,
            notification_type=NotificationTypeEnum.SESSION_UPDATE,
            title="Session Status Updated",
            message=message,
            related_session_id=tutoring_session.id,
        )
        return tutoring_session

    async def submit_feedback(
        self,
        session_id: UUID,
        payload: FeedbackCreate,
        actor: User,
    ) -> TutoringSession:
        """Record the student's one-time rating of a completed session."""
        rating = payload.rating
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationException("Rating must be an integer between 1 and 5.")

        tutoring_session = await self._get_session(session_id, for_update=True)
        if actor.id != tutoring_session.student_id:
            raise ForbiddenException("Only the student can submit feedback.")
        if tutoring_session.status != SessionStatusEnum.COMPLETED:
            raise ValidationException("Feedback can only be given for completed sessions.")
        if tutoring_session.feedback_rating is not None:
            raise AlreadySubmittedException("Feedback has already been submitted.")

        tutoring_session.feedback_rating = rating
        tutoring_session.feedback_comment = payload.comment
        tutoring_session.feedback_submitted_at = utc_now()
        await self.sessions_repository.save(tutoring_session)
        logger.info("Student %s rated session %s with %s", actor.id, tutoring_session.id, rating)

        await self.dispatcher.notify(
            recipient_id=tutoring_session.tutor_id,
            notification_type=NotificationTypeEnum.SESSION_FEEDBACK,
            title="Session Feedback Received",
            message=f"You received a {rating}-star rating for {_course_name(tutoring_session)}.",
            related_session_id=tutoring_session.id,
        )
        return tutoring_session

    async def add_notes(self, session_id: UUID, payload: NotesUpdate, actor: User) -> TutoringSession:
        if payload.notes is None or not payload.notes.strip():
            raise ValidationException("Notes are required.")

        tutoring_session = await self._get_session(session_id)
        self._ensure_participant(tutoring_session, actor)

        tutoring_session.notes = payload.notes
        return await self.sessions_repository.save(tutoring_session)

    async def get_session(self, session_id: UUID, actor: User) -> TutoringSession:
        tutoring_session = await self._get_session(session_id)
        self._ensure_participant(tutoring_session, actor)
        return tutoring_session

    async def list_my_sessions(
        self,
        actor: User,
        status: SessionStatusEnum | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[TutoringSession]:
        """List sessions the actor teaches or booked; ``date_to`` is inclusive."""
        if actor.role not in (RoleEnum.TUTOR, RoleEnum.STUDENT):
            raise ForbiddenException("Only tutors and students have sessions.")

        range_start = None
        if date_from is not None:
            range_start = dt.datetime.combine(date_from, dt.time.min, tzinfo=self.tz)
        range_end = None
        if date_to is not None:
            range_end = dt.datetime.combine(date_to + dt.timedelta(days=1), dt.time.min, tzinfo=self.tz)

        return await self.sessions_repository.list_sessions_for_user(
            actor.id,
            actor.role,
            status,
            range_start,
            range_end,
        )


async def get_sessions_service(
    session: AsyncSession = Depends(get_db_session),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SessionsService:
    """Dependency provider for sessions service."""
    return SessionsService(
        sessions_repository=SessionsRepository(session),
        courses_repository=CoursesRepository(session),
        identity_repository=IdentityRepository(session),
        availability_service=availability_service,
        dispatcher=NotificationDispatcher(NotificationsRepository(session)),
    )
