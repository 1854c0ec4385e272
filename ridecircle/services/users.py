"""User-level queries and account deletion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.domain.entities import Contact
from ridecircle.domain.errors import NotFound
from ridecircle.infrastructure.models import ContactModel, UserModel
from ridecircle.infrastructure.repositories import (
    AssociatedPersonRepository,
    ContactRepository,
    NotificationRepository,
    RideRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class SearchHit:
    user: UserModel
    contact: Optional[ContactModel] = None


class UserService:
    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)
        self.contacts = ContactRepository(session)
        self.rides = RideRepository(session)
        self.notifications = NotificationRepository(session)
        self.people = AssociatedPersonRepository(session)

    async def _load(self, user_id: int) -> UserModel:
        user = await self.users.get_by_id(user_id)
        if user is None or user.deleted_at is not None:
            raise NotFound("User not found")
        return user

    async def stats(self, user_id: int) -> dict[str, int]:
        await self._load(user_id)
        return {
            "rides_offered": await self.rides.count_offered(user_id),
            "rides_accepted": await self.rides.count_accepted(user_id),
        }

    async def search(self, query: str, current_user_id: int) -> list[SearchHit]:
        """Users matching *query* by name or phone, with any existing edge."""
        users = await self.users.search(query, current_user_id)
        edges = {
            Contact.pair_key(e.user_id, e.contact_id): e
            for e in await self.contacts.edges_of(current_user_id)
        }
        return [
            SearchHit(user=u, contact=edges.get(Contact.pair_key(current_user_id, u.id)))
            for u in users
        ]

    async def delete_account(self, user_id: int) -> None:
        """Hard-delete contacts, notifications and saved riders; soft-cancel
        open rides."""
        user = await self._load(user_id)
        cancelled = await self.rides.cancel_all_for_user(user_id)
        removed = await self.contacts.delete_for_user(user_id)
        await self.notifications.delete_for_user(user_id)
        await self.people.delete_for_user(user_id)
        await self.users.anonymize(user)
        logger.info(
            "User %d deleted (%d rides cancelled, %d contacts removed)",
            user_id,
            cancelled,
            removed,
        )
