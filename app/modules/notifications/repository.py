"""Notifications repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import NotificationTypeEnum
from app.modules.notifications.models import Notification


class NotificationsRepository:
    """DB operations for the notification sink."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_notification(
        self,
        recipient_id: UUID,
        notification_type: NotificationTypeEnum,
        title: str,
        message: str,
        related_session_id: UUID | None,
    ) -> Notification:
        # A failed insert rolls back to this savepoint only.
        async with self.session.begin_nested():
            notification = Notification(
                recipient_id=recipient_id,
                type=notification_type,
                title=title,
                message=message,
                related_session_id=related_session_id,
            )
            self.session.add(notification)
            await self.session.flush()
        return notification
