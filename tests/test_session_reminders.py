from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.core.enums import NotificationTypeEnum, SessionStatusEnum
from app.modules.sessions.reminders import ReminderScheduler, SessionRemindersWorker

FIXED_NOW = datetime(2026, 2, 19, 12, 0, tzinfo=UTC)


@dataclass
class FakeSession:
    id: UUID
    tutor_id: UUID
    student_id: UUID
    start_at: datetime
    status: SessionStatusEnum
    course: SimpleNamespace
    tutor: SimpleNamespace
    student: SimpleNamespace
    reminder_sent: bool = False


class FakeSessionsRepository:
    def __init__(self, sessions: list[FakeSession]) -> None:
        self.sessions = sessions
        self.rollbacks = 0
        self.fail_mark_for: set[UUID] = set()

    async def find_reminder_candidates(self, now: datetime, until: datetime, limit: int) -> list[FakeSession]:
        candidates = [
            item
            for item in self.sessions
            if item.status == SessionStatusEnum.CONFIRMED
            and not item.reminder_sent
            and now < item.start_at < until
        ]
        return sorted(candidates, key=lambda item: item.start_at)[:limit]

    @asynccontextmanager
    async def savepoint(self):
        try:
            yield
        except Exception:
            self.rollbacks += 1
            raise

    async def mark_reminder_sent(self, tutoring_session: FakeSession) -> bool:
        if tutoring_session.id in self.fail_mark_for:
            raise RuntimeError("database went away")
        if tutoring_session.reminder_sent:
            return False
        tutoring_session.reminder_sent = True
        return True


class FakeDispatcher:
    def __init__(self, undeliverable: set[UUID] | None = None) -> None:
        self.undeliverable = undeliverable or set()
        self.calls: list[dict] = []

    async def notify(self, **kwargs) -> bool:
        self.calls.append(kwargs)
        return kwargs["recipient_id"] not in self.undeliverable


def make_session(
    *,
    starts_in: timedelta,
    status: SessionStatusEnum = SessionStatusEnum.CONFIRMED,
    reminder_sent: bool = False,
) -> FakeSession:
    tutor_id = uuid4()
    student_id = uuid4()
    return FakeSession(
        id=uuid4(),
        tutor_id=tutor_id,
        student_id=student_id,
        start_at=FIXED_NOW + starts_in,
        status=status,
        course=SimpleNamespace(name="Biology"),
        tutor=SimpleNamespace(id=tutor_id, full_name="Dr. Green"),
        student=SimpleNamespace(id=student_id, full_name="Sam Student"),
        reminder_sent=reminder_sent,
    )


def make_worker(
    sessions: list[FakeSession],
    dispatcher: FakeDispatcher | None = None,
) -> tuple[SessionRemindersWorker, FakeSessionsRepository, FakeDispatcher]:
    repository = FakeSessionsRepository(sessions)
    dispatcher = dispatcher or FakeDispatcher()
    worker = SessionRemindersWorker(
        sessions_repository=repository,  # type: ignore[arg-type]
        dispatcher=dispatcher,  # type: ignore[arg-type]
        lookahead_hours=24,
        batch_size=100,
        now_provider=lambda: FIXED_NOW,
    )
    return worker, repository, dispatcher


@pytest.mark.asyncio
async def test_sweep_reminds_once_per_session() -> None:
    upcoming = make_session(starts_in=timedelta(hours=23))
    worker, _, dispatcher = make_worker([upcoming])

    first = await worker.run_once()
    second = await worker.run_once()

    assert first["success"] is True
    assert first["count"] == 1
    assert first["failed"] == 0
    assert upcoming.reminder_sent is True
    assert second["count"] == 0
    assert len(dispatcher.calls) == 2


@pytest.mark.asyncio
async def test_sweep_notifies_student_and_tutor() -> None:
    upcoming = make_session(starts_in=timedelta(hours=3))
    worker, _, dispatcher = make_worker([upcoming])

    await worker.run_once()

    assert [call["recipient_id"] for call in dispatcher.calls] == [upcoming.student_id, upcoming.tutor_id]
    assert all(call["notification_type"] == NotificationTypeEnum.SESSION_REMINDER for call in dispatcher.calls)
    assert all(call["title"] == "Upcoming Session Reminder" for call in dispatcher.calls)
    assert dispatcher.calls[0]["message"] == (
        "Your session for Biology with Dr. Green is scheduled in less than 24 hours."
    )
    assert dispatcher.calls[1]["message"] == (
        "Your session for Biology with Sam Student is scheduled in less than 24 hours."
    )


@pytest.mark.asyncio
async def test_sweep_ignores_sessions_outside_the_window() -> None:
    sessions = [
        make_session(starts_in=timedelta(hours=25)),
        make_session(starts_in=timedelta(hours=-1)),
        make_session(starts_in=timedelta(hours=24)),
        make_session(starts_in=timedelta(hours=2), status=SessionStatusEnum.PENDING),
        make_session(starts_in=timedelta(hours=2), status=SessionStatusEnum.CANCELLED),
        make_session(starts_in=timedelta(hours=2), reminder_sent=True),
    ]
    worker, _, dispatcher = make_worker(sessions)

    stats = await worker.run_once()

    assert stats["count"] == 0
    assert dispatcher.calls == []


@pytest.mark.asyncio
async def test_undelivered_notification_leaves_flag_unset_for_retry() -> None:
    broken = make_session(starts_in=timedelta(hours=5))
    healthy = make_session(starts_in=timedelta(hours=6))
    dispatcher = FakeDispatcher(undeliverable={broken.tutor_id})
    worker, repository, _ = make_worker([broken, healthy], dispatcher)

    stats = await worker.run_once()

    assert stats == {
        "success": True,
        "count": 1,
        "failed": 1,
        "message": "Sent reminders for 1 sessions",
    }
    assert broken.reminder_sent is False
    assert healthy.reminder_sent is True
    assert repository.rollbacks == 1

    dispatcher.undeliverable.clear()
    retry = await worker.run_once()
    assert retry["count"] == 1
    assert broken.reminder_sent is True


@pytest.mark.asyncio
async def test_one_failing_session_does_not_abort_the_sweep() -> None:
    sessions = [make_session(starts_in=timedelta(hours=hours)) for hours in (1, 2, 3)]
    worker, repository, _ = make_worker(sessions)
    repository.fail_mark_for.add(sessions[1].id)

    stats = await worker.run_once()

    assert stats["count"] == 2
    assert stats["failed"] == 1
    assert [item.reminder_sent for item in sessions] == [True, False, True]


@pytest.mark.asyncio
async def test_sweep_reports_failure_when_candidates_cannot_be_loaded() -> None:
    worker, repository, _ = make_worker([])

    async def _broken(**_: object) -> list[FakeSession]:
        raise RuntimeError("connection refused")

    repository.find_reminder_candidates = _broken  # type: ignore[method-assign]

    stats = await worker.run_once()

    assert stats["success"] is False
    assert stats["count"] == 0


@pytest.mark.asyncio
async def test_scheduler_runs_immediately_and_repeats() -> None:
    calls: list[int] = []
    second_cycle = asyncio.Event()

    async def run_cycle() -> dict:
        calls.append(len(calls))
        if len(calls) >= 2:
            second_cycle.set()
        return {"success": True, "count": 0, "failed": 0}

    scheduler = ReminderScheduler(run_cycle=run_cycle, interval_seconds=0.01)
    scheduler.start()
    scheduler.start()

    await asyncio.wait_for(second_cycle.wait(), timeout=1)
    assert scheduler.running is True

    await scheduler.stop()
    assert scheduler.running is False
    stopped_at = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == stopped_at


@pytest.mark.asyncio
async def test_scheduler_survives_failing_cycle() -> None:
    outcomes: list[str] = []
    recovered = asyncio.Event()

    async def run_cycle() -> dict:
        if not outcomes:
            outcomes.append("failed")
            raise RuntimeError("boom")
        outcomes.append("ok")
        recovered.set()
        return {"success": True, "count": 0, "failed": 0}

    scheduler = ReminderScheduler(run_cycle=run_cycle, interval_seconds=0.01)
    scheduler.start()
    await asyncio.wait_for(recovered.wait(), timeout=1)
    await scheduler.stop()

    assert outcomes[:2] == ["failed", "ok"]


@pytest.mark.asyncio
async def test_stopping_idle_scheduler_is_noop() -> None:
    async def run_cycle() -> dict:
        return {}

    scheduler = ReminderScheduler(run_cycle=run_cycle, interval_seconds=60)
    await scheduler.stop()
    assert scheduler.running is False


def test_scheduler_rejects_non_positive_interval() -> None:
    async def run_cycle() -> dict:
        return {}

    with pytest.raises(ValueError):
        ReminderScheduler(run_cycle=run_cycle, interval_seconds=0)
