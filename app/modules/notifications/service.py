"""Notification dispatch used by the scheduling core."""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.enums import NotificationTypeEnum
from app.modules.notifications.repository import NotificationsRepository

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Best-effort notification sink.

    A failed delivery is logged and reported as ``False``; it never undoes the
    booking or status change that triggered it.
    """

    def __init__(self, repository: NotificationsRepository) -> None:
        self.repository = repository

    async def notify(
        self,
        recipient_id: UUID,
        notification_type: NotificationTypeEnum,
        title: str,
        message: str,
        related_session_id: UUID | None = None,
    ) -> bool:
        """Persist one notification for ``recipient_id``."""
        try:
            await self.repository.create_notification(
                recipient_id=recipient_id,
                notification_type=notification_type,
                title=title,
                message=message,
                related_session_id=related_session_id,
            )
        except Exception:
            logger.exception(
                "Failed to deliver %s notification to %s (session %s)",
                notification_type,
                recipient_id,
                related_session_id,
            )
            return False
        return True
