"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """System roles."""

    STUDENT = "student"
    TUTOR = "tutor"
    ADMIN = "admin"


class SessionStatusEnum(StrEnum):
    """Tutoring session lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_SESSION_STATUSES = (SessionStatusEnum.PENDING, SessionStatusEnum.CONFIRMED)
TERMINAL_SESSION_STATUSES = (SessionStatusEnum.CANCELLED, SessionStatusEnum.COMPLETED)


class NotificationTypeEnum(StrEnum):
    """Kinds of notifications emitted by the scheduling core."""

    SESSION_REQUEST = "session_request"
    SESSION_UPDATE = "session_update"
    SESSION_FEEDBACK = "session_feedback"
    SESSION_REMINDER = "session_reminder"


class AvailabilityContainmentEnum(StrEnum):
    """How a requested interval must fit inside an availability window."""

    START = "start"
    INTERVAL = "interval"


def enum_values(enum_cls: type[StrEnum]) -> list[str]:
    """Persist enum values (not member names) in string-backed columns."""
    return [item.value for item in enum_cls]
