"""Reminder sweep for upcoming confirmed sessions and its in-process scheduler."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from datetime import timedelta
from typing import Any

from app.core.enums import NotificationTypeEnum
from app.core.metrics import record_reminder_outcome
from app.modules.notifications.service import NotificationDispatcher
from app.modules.sessions.models import TutoringSession
from app.modules.sessions.repository import SessionsRepository
from app.shared.time_utils import utc_now

logger = logging.getLogger(__name__)


class ReminderDeliveryError(RuntimeError):
    """Raised inside a reminder savepoint when a notification was not delivered."""


class SessionRemindersWorker:
    """Send one reminder per confirmed session starting within the lookahead."""

    def __init__(
        self,
        sessions_repository: SessionsRepository,
        dispatcher: NotificationDispatcher,
        *,
        lookahead_hours: int = 24,
        batch_size: int = 500,
        now_provider=utc_now,
    ) -> None:
        self.sessions_repository = sessions_repository
        self.dispatcher = dispatcher
        self.lookahead_hours = lookahead_hours
        self.batch_size = batch_size
        self.now_provider = now_provider

    async def run_once(self) -> dict[str, Any]:
        """Run one sweep. Never raises; per-session failures are counted."""
        stats: dict[str, Any] = {"success": True, "count": 0, "failed": 0}
        now = self.now_provider()
        try:
            candidates = await self.sessions_repository.find_reminder_candidates(
                now=now,
                until=now + timedelta(hours=self.lookahead_hours),
                limit=self.batch_size,
            )
        except Exception:
            logger.exception("Reminder sweep could not load candidate sessions")
            stats["success"] = False
            stats["message"] = "Failed to load sessions for reminders"
            return stats

        for tutoring_session in candidates:
            try:
                async with self.sessions_repository.savepoint():
                    if await self._remind(tutoring_session):
                        stats["count"] += 1
            except Exception:
                logger.exception("Failed to send reminder for session %s", tutoring_session.id)
                stats["failed"] += 1

        record_reminder_outcome("sent", stats["count"])
        record_reminder_outcome("failed", stats["failed"])
        stats["message"] = f"Sent reminders for {stats['count']} sessions"
        logger.info(
            "Reminder sweep finished: %s candidates, %s reminded, %s failed",
            len(candidates),
            stats["count"],
            stats["failed"],
        )
        return stats

    async def _remind(self, tutoring_session: TutoringSession) -> bool:
        course_name = tutoring_session.course.name
        deliveries = (
            (tutoring_session.student_id, tutoring_session.tutor.full_name),
            (tutoring_session.tutor_id, tutoring_session.student.full_name),
        )
        for recipient_id, counterpart_name in deliveries:
            delivered = await self.dispatcher.notify(
                recipient_id=recipient_id,
                notification_type=NotificationTypeEnum.SESSION_REMINDER,
                title="Upcoming Session Reminder",
                message=(
                    f"Your session for {course_name} with {counterpart_name} "
                    "is scheduled in less than 24 hours."
                ),
                related_session_id=tutoring_session.id,
            )
            if not delivered:
                raise ReminderDeliveryError(f"Reminder for {recipient_id} was not delivered")

        # False when another sweep flipped the flag first.
        return await self.sessions_repository.mark_reminder_sent(tutoring_session)


class ReminderScheduler:
    """Long-lived asyncio task running reminder sweeps at a fixed interval.

    The first cycle runs immediately on ``start()``. A failing cycle is logged
    and the loop keeps going.
    """

    def __init__(
        self,
        run_cycle: Callable[[], Awaitable[dict[str, Any]]],
        interval_seconds: float,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.run_cycle = run_cycle
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-reminder-scheduler")
        logger.info("Reminder scheduler started (every %s seconds)", self.interval_seconds)

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Reminder scheduler stopped")

    async def _run(self) -> None:
        while True:
            try:
                stats = await self.run_cycle()
                logger.info("Reminder scheduler cycle stats: %s", stats)
            except Exception:
                logger.exception("Reminder scheduler cycle failed")
            await asyncio.sleep(self.interval_seconds)
