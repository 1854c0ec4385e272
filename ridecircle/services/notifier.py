"""
Notification fan-out.

``notify`` is fire-and-forget: it records an inbox row under a savepoint of
the current unit of work and hands the message to a push sender.  Anything
that goes wrong here is logged and swallowed so the transition that
triggered it stands.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.domain.enums import NotificationType
from ridecircle.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)

PUSH_TITLES = {
    NotificationType.CONTACT_REQUEST: "New Contact Request",
    NotificationType.CONTACT_ACCEPTED: "Contact Request Accepted",
    NotificationType.RIDE_ACCEPTED: "Ride Accepted",
    NotificationType.RIDE_CANCELLED: "Ride Cancelled",
    NotificationType.RIDE_COMPLETED: "Ride Completed",
    NotificationType.NEW_NOTE: "New Message",
}


class Notifier(Protocol):
    async def notify(
        self,
        user_id: int,
        message: str,
        type: NotificationType,
        related_id: Optional[int] = None,
    ) -> None: ...


class PushSender(Protocol):
    async def send(self, user_id: int, title: str, body: str) -> None: ...


class LoggingPushSender:
    """Default sender: push delivery is owned by another service."""

    async def send(self, user_id: int, title: str, body: str) -> None:
        logger.debug("push to user %d: %s", user_id, title)


class NotificationService:
    def __init__(
        self, session: AsyncSession, push_sender: PushSender | None = None
    ):
        self.session = session
        self.repo = NotificationRepository(session)
        self.push_sender = push_sender or LoggingPushSender()

    async def notify(
        self,
        user_id: int,
        message: str,
        type: NotificationType,
        related_id: Optional[int] = None,
    ) -> None:
        try:
            # A rejected inbox row only rolls back to this savepoint
            async with self.session.begin_nested():
                self.repo.add(
                    user_id=user_id,
                    message=message,
                    type=type.value,
                    related_id=related_id,
                )
                await self.session.flush()
            await self.push_sender.send(
                user_id, PUSH_TITLES.get(type, "RideCircle"), message
            )
        except Exception:
            logger.exception(
                "Failed to notify user %s (%s)", user_id, type.value
            )
