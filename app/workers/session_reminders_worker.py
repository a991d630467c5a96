"""Executable worker for session reminder sweeps."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from app.core.config import get_settings
from app.core.database import session_scope
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.service import NotificationDispatcher
from app.modules.sessions.reminders import SessionRemindersWorker
from app.modules.sessions.repository import SessionsRepository

settings = get_settings()
logger = logging.getLogger(__name__)


async def run_cycle() -> dict[str, Any]:
    """Run a single reminder sweep in one DB transaction."""
    async with session_scope() as session:
        worker = SessionRemindersWorker(
            sessions_repository=SessionsRepository(session),
            dispatcher=NotificationDispatcher(NotificationsRepository(session)),
            lookahead_hours=settings.reminder_lookahead_hours,
            batch_size=int(os.getenv("REMINDER_WORKER_BATCH_SIZE", str(settings.reminder_batch_size))),
        )
        return await worker.run_once()


async def main() -> None:
    """Run once or keep sweeping according to worker mode."""
    logging.basicConfig(level=os.getenv("REMINDER_WORKER_LOG_LEVEL", settings.log_level))
    mode = os.getenv("REMINDER_WORKER_MODE", "once").strip().lower()
    poll_seconds = float(os.getenv("REMINDER_WORKER_POLL_SECONDS", str(settings.reminder_interval_hours * 3600)))

    if mode == "once":
        stats = await run_cycle()
        logger.info("Session reminders worker stats: %s", stats)
        return

    while True:
        try:
            stats = await run_cycle()
            logger.info("Session reminders worker stats: %s", stats)
        except Exception:
            logger.exception("Session reminders worker cycle failed")
        await asyncio.sleep(poll_seconds)


if __name__ == "__main__":
    asyncio.run(main())
