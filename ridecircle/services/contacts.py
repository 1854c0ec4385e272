"""
Contact graph operations.

An edge is created ``pending`` by its initiator and can only be accepted by
the addressed party.  Either party may remove it; removal is a hard delete.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.domain.entities import Contact
from ridecircle.domain.enums import ContactStatus, NotificationType
from ridecircle.domain.errors import DuplicateEdge, Forbidden, NotFound
from ridecircle.domain.visibility import connected_user_ids
from ridecircle.infrastructure.models import ContactModel
from ridecircle.infrastructure.repositories import ContactRepository, UserRepository
from ridecircle.services.notifier import NotificationService, Notifier

logger = logging.getLogger(__name__)


def to_entity(model: ContactModel) -> Contact:
    return Contact(
        id=model.id,
        user_id=model.user_id,
        contact_id=model.contact_id,
        status=ContactStatus(model.status),
        created_at=model.created_at,
    )


class ContactService:
    def __init__(self, session: AsyncSession, notifier: Notifier | None = None):
        self.contacts = ContactRepository(session)
        self.users = UserRepository(session)
        self.notifier = notifier or NotificationService(session)

    async def request(self, initiator_id: int, target_id: int) -> ContactModel:
        """Create a pending edge from *initiator_id* to *target_id*."""
        if initiator_id == target_id:
            raise Forbidden("You cannot add yourself as a contact")
        initiator = await self.users.get_by_id(initiator_id)
        target = await self.users.get_by_id(target_id)
        for user in (initiator, target):
            if user is None or user.deleted_at is not None:
                raise NotFound("User not found")
        if await self.contacts.find_between(initiator_id, target_id):
            raise DuplicateEdge("A contact already exists between these users")

        contact = await self.contacts.create(initiator_id, target_id)
        logger.info(
            "Contact %d requested: %d -> %d", contact.id, initiator_id, target_id
        )

        await self.notifier.notify(
            target_id,
            f"{initiator.name} sent you a contact request",
            NotificationType.CONTACT_REQUEST,
            contact.id,
        )
        return contact

    async def request_by_phone(self, initiator_id: int, phone: str) -> ContactModel:
        """Same as ``request`` with the target looked up by E.164 phone."""
        target = await self.users.get_by_phone(phone)
        if target is None:
            raise NotFound("User not found")
        return await self.request(initiator_id, target.id)

    async def accept(self, edge_id: int, accepter_id: int) -> ContactModel:
        model = await self.contacts.get_by_id(edge_id)
        if model is None:
            raise NotFound("Contact request not found")

        edge = to_entity(model)
        edge.accept(accepter_id)
        await self.contacts.set_status(model, edge.status)
        logger.info("Contact %d accepted by %d", edge_id, accepter_id)

        accepter = await self.users.get_by_id(accepter_id)
        name = accepter.name if accepter else "a contact"
        await self.notifier.notify(
            model.user_id,
            f"Your contact request has been accepted by {name}",
            NotificationType.CONTACT_ACCEPTED,
            edge_id,
        )
        return model

    async def remove(self, edge_id: int, requester_id: int) -> None:
        model = await self.contacts.get_by_id(edge_id)
        if model is None:
            raise NotFound("Contact not found")
        if not to_entity(model).involves(requester_id):
            raise Forbidden("You are not part of this contact")
        await self.contacts.delete(model)
        logger.info("Contact %d removed by %d", edge_id, requester_id)

    async def edges_of(self, user_id: int) -> list[ContactModel]:
        return await self.contacts.edges_of(user_id)

    async def accepted_contact_ids(self, user_id: int) -> set[int]:
        return connected_user_ids(user_id, await self.contacts.edges_of(user_id))

    async def is_accepted_contact(self, a: int, b: int) -> bool:
        edge = await self.contacts.find_between(a, b)
        return edge is not None and edge.status == ContactStatus.ACCEPTED
