"""Read-only contact suggestions for a user (see ``domain.suggestions``)."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.config import settings
from ridecircle.domain.suggestions import Suggestion, rank_suggestions
from ridecircle.domain.visibility import connected_user_ids
from ridecircle.infrastructure.repositories import ContactRepository, RideRepository

logger = logging.getLogger(__name__)


class SuggestionService:
    def __init__(self, session: AsyncSession):
        self.contacts = ContactRepository(session)
        self.rides = RideRepository(session)

    async def suggest(
        self, user_id: int, limit: int | None = None
    ) -> list[Suggestion]:
        contact_ids = connected_user_ids(
            user_id, await self.contacts.edges_of(user_id)
        )
        if not contact_ids:
            return []

        second_hop = await self.contacts.accepted_edges_touching(contact_ids)
        shared_rides = await self.rides.get_touching_users(contact_ids, user_id)
        suggestions = rank_suggestions(
            user_id,
            contact_ids,
            second_hop,
            shared_rides,
            limit=limit or settings.suggestion_limit,
        )
        logger.debug(
            "Suggestions for %d: %d candidates from %d contacts",
            user_id,
            len(suggestions),
            len(contact_ids),
        )
        return suggestions
