"""Which rides a user may see: their own and their accepted contacts'."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.config import settings
from ridecircle.domain.visibility import connected_user_ids, filter_available
from ridecircle.infrastructure.models import ContactModel, RideModel
from ridecircle.infrastructure.repositories import ContactRepository, RideRepository


class VisibilityService:
    def __init__(self, session: AsyncSession):
        self.contacts = ContactRepository(session)
        self.rides = RideRepository(session)

    async def available_rides(self, user_id: int) -> list[RideModel]:
        """Pending rides requested by accepted contacts, soonest first."""
        contact_ids = connected_user_ids(
            user_id, await self.contacts.edges_of(user_id)
        )
        if not contact_ids:
            return []
        rides = await self.rides.get_pending_by_requesters(
            contact_ids, user_id, limit=settings.available_rides_limit
        )
        return filter_available(user_id, contact_ids, rides)

    async def dashboard(
        self, user_id: int
    ) -> tuple[list[RideModel], list[ContactModel]]:
        """Everything the dashboard polls for: rides plus all contact edges."""
        edges = await self.contacts.edges_of(user_id)
        contact_ids = connected_user_ids(user_id, edges)
        rides = await self.rides.get_dashboard_rides(
            user_id, contact_ids, settings.dashboard_ride_limit
        )
        return rides, edges
