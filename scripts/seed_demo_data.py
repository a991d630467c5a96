"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import close_engine, session_scope, touch
from app.core.enums import RoleEnum
from app.core.security import create_access_token
from app.modules.availability.models import AvailabilityWindow
from app.modules.availability.repository import AvailabilityRepository
from app.modules.availability.schemas import AvailabilityWindowCreate
from app.modules.availability.service import AvailabilityService
from app.modules.courses.models import Course
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.sessions.repository import SessionsRepository

DEMO_ADMIN_EMAIL = "demo-admin@tutorbook.dev"
DEMO_TUTOR_EMAIL = "demo-tutor@tutorbook.dev"
DEMO_STUDENT_EMAIL = "demo-student@tutorbook.dev"

DEMO_COURSE_NAME = "Intro to Algebra"
# Monday to Friday, 0 = Sunday.
DEMO_WEEKDAYS = (1, 2, 3, 4, 5)
DEMO_WINDOW_START = "09:00"
DEMO_WINDOW_END = "17:00"


@dataclass(slots=True)
class SeedStats:
    users_created: int = 0
    users_updated: int = 0
    course_created: bool = False
    course_id: str | None = None
    windows_created: int = 0
    tokens: dict[str, str] = field(default_factory=dict)


async def _ensure_user(
    session: AsyncSession,
    *,
    email: str,
    full_name: str,
    role: RoleEnum,
) -> tuple[User, bool]:
    user = await IdentityRepository(session).get_user_by_email(email)
    created = False
    if user is None:
        user = User(email=email, full_name=full_name, role=role, is_active=True)
        session.add(user)
        created = True
    elif user.role != role or not user.is_active or user.full_name != full_name:
        user.role = role
        user.is_active = True
        user.full_name = full_name
        touch(user)

    await session.flush()
    return user, created


async def _ensure_course(session: AsyncSession, tutor: User) -> tuple[Course, bool]:
    course = await session.scalar(
        select(Course).where(Course.tutor_id == tutor.id, Course.name == DEMO_COURSE_NAME),
    )
    if course is not None:
        return course, False

    course = Course(
        tutor_id=tutor.id,
        name=DEMO_COURSE_NAME,
        description="Equations, functions and graphs for beginners.",
    )
    session.add(course)
    await session.flush()
    return course, True


async def _ensure_weekly_availability(session: AsyncSession, tutor: User) -> int:
    availability_service = AvailabilityService(
        repository=AvailabilityRepository(session),
        identity_repository=IdentityRepository(session),
        sessions_repository=SessionsRepository(session),
    )
    created = 0
    for weekday in DEMO_WEEKDAYS:
        existing = await session.scalar(
            select(AvailabilityWindow).where(
                AvailabilityWindow.tutor_id == tutor.id,
                AvailabilityWindow.is_recurring.is_(True),
                AvailabilityWindow.day_of_week == weekday,
                AvailabilityWindow.start_time == DEMO_WINDOW_START,
                AvailabilityWindow.end_time == DEMO_WINDOW_END,
            ),
        )
        if existing is not None:
            continue

        await availability_service.add_window(
            AvailabilityWindowCreate(
                day_of_week=weekday,
                start_time=DEMO_WINDOW_START,
                end_time=DEMO_WINDOW_END,
                is_recurring=True,
            ),
            tutor,
        )
        created += 1
    return created


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with session_scope() as session:
        admin_user, admin_created = await _ensure_user(
            session,
            email=DEMO_ADMIN_EMAIL,
            full_name="Demo Admin",
            role=RoleEnum.ADMIN,
        )
        tutor_user, tutor_created = await _ensure_user(
            session,
            email=DEMO_TUTOR_EMAIL,
            full_name="Demo Tutor",
            role=RoleEnum.TUTOR,
        )
        student_user, student_created = await _ensure_user(
            session,
            email=DEMO_STUDENT_EMAIL,
            full_name="Demo Student",
            role=RoleEnum.STUDENT,
        )
        stats.users_created = sum([admin_created, tutor_created, student_created])
        stats.users_updated = 3 - stats.users_created

        course, stats.course_created = await _ensure_course(session, tutor_user)
        stats.course_id = str(course.id)
        stats.windows_created = await _ensure_weekly_availability(session, tutor_user)

    for label, user in (("admin", admin_user), ("tutor", tutor_user), ("student", student_user)):
        stats.tokens[label] = create_access_token(str(user.id))
    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seed idempotent demo data for TutorBook (admin, tutor, student, "
            "one course, weekday availability)."
        ),
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Users created: {stats.users_created}")
    print(f"- Users updated: {stats.users_updated}")
    print(f"- Course created: {stats.course_created}")
    print(f"- Course id: {stats.course_id}")
    print(f"- Availability windows created: {stats.windows_created}")
    print("")
    print("Demo access tokens (non-production only):")
    for label, token in stats.tokens.items():
        print(f"- {label}: {token}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
