"""Tutoring session repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.orm import selectinload

from app.core.database import touch
from app.core.enums import ACTIVE_SESSION_STATUSES, RoleEnum, SessionStatusEnum
from app.modules.sessions.models import TutoringSession
from app.shared.exceptions import ConflictException
from app.shared.time_utils import utc_now

ACTIVE_OVERLAP_CONSTRAINT = "ex_sessions_tutor_active_overlap"


def tutor_lock_key(tutor_id: UUID) -> int:
    """Map tutor id onto a signed 64-bit advisory lock key."""
    return int.from_bytes(tutor_id.bytes[:8], byteorder="big", signed=True)


class SessionsRepository:
    """DB operations for tutoring sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def savepoint(self) -> AsyncSessionTransaction:
        """Nested transaction scoping one unit of work inside the request."""
        return self.session.begin_nested()

    async def lock_tutor_schedule(self, tutor_id: UUID) -> None:
        """Serialize schedule writes for one tutor until the transaction ends."""
        if self.session.bind.dialect.name != "postgresql":
            return
        await self.session.execute(select(func.pg_advisory_xact_lock(tutor_lock_key(tutor_id))))

    async def create_session(
        self,
        course_id: UUID,
        tutor_id: UUID,
        student_id: UUID,
        start_at: datetime,
        end_at: datetime,
    ) -> TutoringSession:
        tutoring_session = TutoringSession(
            course_id=course_id,
            tutor_id=tutor_id,
            student_id=student_id,
            start_at=start_at,
            end_at=end_at,
            status=SessionStatusEnum.PENDING,
            reminder_sent=False,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(tutoring_session)
                await self.session.flush()
        except IntegrityError as exc:
            if ACTIVE_OVERLAP_CONSTRAINT in str(exc.orig):
                raise ConflictException("The selected time conflicts with another booking") from exc
            raise
        return tutoring_session

    async def get_session_by_id(self, session_id: UUID, *, for_update: bool = False) -> TutoringSession | None:
        """Load one session; ``for_update`` row-locks it until the transaction ends."""
        stmt = (
            select(TutoringSession)
            .options(selectinload(TutoringSession.course))
            .where(TutoringSession.id == session_id)
        )
        if for_update:
            stmt = stmt.with_for_update(of=TutoringSession).execution_options(populate_existing=True)
        return await self.session.scalar(stmt)

    async def check_conflict(
        self,
        tutor_id: UUID,
        start_at: datetime,
        end_at: datetime,
        exclude_session_id: UUID | None = None,
    ) -> bool:
        conditions = [
            TutoringSession.tutor_id == tutor_id,
            TutoringSession.status.in_(ACTIVE_SESSION_STATUSES),
            TutoringSession.start_at < end_at,
            TutoringSession.end_at > start_at,
        ]
        if exclude_session_id is not None:
            conditions.append(TutoringSession.id != exclude_session_id)
        return bool(await self.session.scalar(select(exists().where(*conditions))))

    async def list_active_sessions_between(
        self,
        tutor_id: UUID,
        start_at: datetime,
        end_at: datetime,
    ) -> list[TutoringSession]:
        stmt = (
            select(TutoringSession)
            .where(
                TutoringSession.tutor_id == tutor_id,
                TutoringSession.status.in_(ACTIVE_SESSION_STATUSES),
                TutoringSession.start_at < end_at,
                TutoringSession.end_at > start_at,
            )
            .order_by(TutoringSession.start_at.asc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_sessions_for_user(
        self,
        user_id: UUID,
        role: RoleEnum,
        status: SessionStatusEnum | None,
        date_from: datetime | None,
        date_to: datetime | None,
    ) -> list[TutoringSession]:
        base_stmt: Select[tuple[TutoringSession]] = select(TutoringSession).options(
            selectinload(TutoringSession.course),
        )
        if role == RoleEnum.TUTOR:
            base_stmt = base_stmt.where(TutoringSession.tutor_id == user_id)
        else:
            base_stmt = base_stmt.where(TutoringSession.student_id == user_id)

        if status is not None:
            base_stmt = base_stmt.where(TutoringSession.status == status)
        if date_from is not None:
            base_stmt = base_stmt.where(TutoringSession.start_at >= date_from)
        if date_to is not None:
            base_stmt = base_stmt.where(TutoringSession.start_at < date_to)

        stmt = base_stmt.order_by(TutoringSession.start_at.asc())
        return list((await self.session.scalars(stmt)).all())

    async def find_reminder_candidates(
        self,
        now: datetime,
        until: datetime,
        limit: int,
    ) -> list[TutoringSession]:
        stmt = (
            select(TutoringSession)
            .options(
                selectinload(TutoringSession.course),
                selectinload(TutoringSession.tutor),
                selectinload(TutoringSession.student),
            )
            .where(
                TutoringSession.status == SessionStatusEnum.CONFIRMED,
                TutoringSession.reminder_sent.is_(False),
                TutoringSession.start_at > now,
                TutoringSession.start_at < until,
            )
            .order_by(TutoringSession.start_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True, of=TutoringSession)
        )
        return list((await self.session.scalars(stmt)).all())

    async def mark_reminder_sent(self, tutoring_session: TutoringSession) -> bool:
        """Flip the one-shot reminder flag; False if it was already set."""
        now = utc_now()
        result = await self.session.execute(
            update(TutoringSession)
            .where(
                TutoringSession.id == tutoring_session.id,
                TutoringSession.reminder_sent.is_(False),
            )
            .values(reminder_sent=True, updated_at=now)
            .execution_options(synchronize_session=False),
        )
        tutoring_session.reminder_sent = True
        tutoring_session.updated_at = now
        return result.rowcount == 1

    async def save(self, tutoring_session: TutoringSession) -> TutoringSession:
        touch(tutoring_session)
        await self.session.flush()
        return tutoring_session
