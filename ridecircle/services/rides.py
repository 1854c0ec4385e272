"""
Ride Lifecycle State Machine
============================

::

    create ──► pending ──accept──► accepted ──complete──► completed
                 ▲  │                 │
                 │  └─cancel-request──┼──────────────────► cancelled
                 └────cancel-offer────┘

Each transition is single-shot:

1. Load the ride (``NotFound``) and check the actor (``Forbidden``).
2. Apply the transition on the ``Ride`` entity (``InvalidState``).
3. Issue exactly one conditional write keyed on the status read in step 1.
   Losing that compare-and-swap raises ``Conflict``; nothing is retried.
4. Notify the counter-party.  Notification failures never undo the write.

Accept is additionally gated on the contact graph *at accept time*: only an
accepted contact of the requester may fulfil a ride, since the edge may have
been removed after the ride was listed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.domain.entities import Location, Ride
from ridecircle.domain.enums import NotificationType, RideStatus
from ridecircle.domain.errors import (
    Conflict,
    Forbidden,
    InvalidRide,
    InvalidState,
    NotFound,
)
from ridecircle.infrastructure.models import RideModel, RideNoteModel
from ridecircle.infrastructure.repositories import (
    AssociatedPersonRepository,
    RideNoteRepository,
    RideRepository,
    UserRepository,
)
from ridecircle.services.contacts import ContactService
from ridecircle.services.notifier import NotificationService, Notifier

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "from_location",
    "to_location",
    "from_lat",
    "from_lon",
    "to_lat",
    "to_lon",
    "time",
    "rider_name",
    "rider_phone",
    "note",
)


def to_entity(model: RideModel) -> Ride:
    return Ride(
        id=model.id,
        requester_id=model.requester_id,
        accepter_id=model.accepter_id,
        origin=Location(model.from_location, model.from_lat, model.from_lon),
        destination=Location(model.to_location, model.to_lat, model.to_lon),
        time=model.time,
        status=RideStatus(model.status),
        rider_name=model.rider_name,
        rider_phone=model.rider_phone,
        note=model.note,
        is_edited=bool(model.is_edited),
    )


def _validate_details(fields: dict[str, Any]) -> None:
    for key in ("from_location", "to_location", "rider_name"):
        if key in fields and not (fields[key] or "").strip():
            raise InvalidRide(f"{key} must not be empty")
    if "time" in fields and fields["time"] is None:
        raise InvalidRide("time is required")
    for key, bound in (("from_lat", 90), ("to_lat", 90), ("from_lon", 180), ("to_lon", 180)):
        value = fields.get(key)
        if value is not None and not -bound <= value <= bound:
            raise InvalidRide(f"{key} out of range")


class RideService:
    def __init__(self, session: AsyncSession, notifier: Notifier | None = None):
        self.rides = RideRepository(session)
        self.notes = RideNoteRepository(session)
        self.users = UserRepository(session)
        self.people = AssociatedPersonRepository(session)
        self.notifier = notifier or NotificationService(session)
        self.contacts = ContactService(session, self.notifier)

    # ── helpers ───────────────────────────────────────────────────

    async def _load(self, ride_id: int) -> RideModel:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFound("Ride not found")
        return ride

    async def _user_name(self, user_id: int) -> str:
        user = await self.users.get_by_id(user_id)
        return user.name if user else "Someone"

    async def _apply(
        self,
        model: RideModel,
        transition: Callable[[Ride], None],
    ) -> tuple[Ride, RideModel]:
        """Run *transition* on the entity and persist it with one CAS."""
        ride = to_entity(model)
        expected = ride.status
        transition(ride)

        won = await self.rides.update_status(
            ride.id, expected, ride.status, accepter_id=ride.accepter_id
        )
        if not won:
            logger.info(
                "Ride %d changed concurrently (expected %s)", ride.id, expected.value
            )
            raise Conflict("Ride was updated by someone else, refresh and retry")

        logger.info("Ride %d: %s -> %s", ride.id, expected.value, ride.status.value)
        return ride, await self.rides.refresh(ride.id)

    # ── transitions ───────────────────────────────────────────────

    async def create(
        self,
        requester_id: int,
        *,
        from_location: str,
        to_location: str,
        time: Optional[datetime],
        rider_name: Optional[str] = None,
        rider_phone: Optional[str] = None,
        note: Optional[str] = None,
        from_lat: Optional[float] = None,
        from_lon: Optional[float] = None,
        to_lat: Optional[float] = None,
        to_lon: Optional[float] = None,
        associated_person_id: Optional[int] = None,
    ) -> RideModel:
        """Post a pending ride.

        The rider defaults to the chosen associated person, then to the
        requester.
        """
        requester = await self.users.get_by_id(requester_id)
        if requester is None or requester.deleted_at is not None:
            raise NotFound("User not found")

        if associated_person_id is not None:
            person = await self.people.get_for_owner(associated_person_id, requester_id)
            if person is None:
                raise NotFound("Associated person not found")
            rider_name = rider_name or person.name

        fields = {
            "from_location": from_location,
            "to_location": to_location,
            "time": time,
            "rider_name": rider_name or requester.name,
            "from_lat": from_lat,
            "from_lon": from_lon,
            "to_lat": to_lat,
            "to_lon": to_lon,
        }
        _validate_details(fields)

        ride = await self.rides.create_ride(
            requester_id=requester_id,
            rider_phone=rider_phone,
            note=note,
            **fields,
        )
        logger.info("Ride %d created by %d", ride.id, requester_id)
        return ride

    async def accept(self, ride_id: int, actor_id: int) -> RideModel:
        model = await self._load(ride_id)
        if actor_id == model.requester_id:
            raise Forbidden("You cannot accept your own ride")
        if not await self.contacts.is_accepted_contact(actor_id, model.requester_id):
            raise Forbidden("Only contacts of the requester can accept this ride")
        if model.status == RideStatus.ACCEPTED:
            raise Conflict("Ride already accepted")

        ride, updated = await self._apply(model, lambda r: r.accept(actor_id))

        name = await self._user_name(actor_id)
        await self.notifier.notify(
            ride.requester_id,
            f"{name} has accepted your ride from "
            f"{ride.origin.label} to {ride.destination.label}",
            NotificationType.RIDE_ACCEPTED,
            ride.id,
        )
        return updated

    async def cancel_offer(self, ride_id: int, actor_id: int) -> RideModel:
        model = await self._load(ride_id)
        ride, updated = await self._apply(model, lambda r: r.cancel_offer(actor_id))

        name = await self._user_name(actor_id)
        await self.notifier.notify(
            ride.requester_id,
            f"{name} has cancelled their offer for your ride from "
            f"{ride.origin.label} to {ride.destination.label}",
            NotificationType.RIDE_CANCELLED,
            ride.id,
        )
        return updated

    async def cancel_request(self, ride_id: int, actor_id: int) -> RideModel:
        model = await self._load(ride_id)
        # Captured before the transition clears the accepter
        counterpart = to_entity(model).other_participant(actor_id)
        ride, updated = await self._apply(
            model, lambda r: r.cancel_request(actor_id)
        )

        if counterpart is not None:
            name = await self._user_name(actor_id)
            await self.notifier.notify(
                counterpart,
                f"{name} has cancelled the ride from "
                f"{ride.origin.label} to {ride.destination.label}",
                NotificationType.RIDE_CANCELLED,
                ride.id,
            )
        return updated

    async def complete(self, ride_id: int, actor_id: int) -> RideModel:
        model = await self._load(ride_id)
        ride, updated = await self._apply(model, lambda r: r.complete(actor_id))

        counterpart = ride.other_participant(actor_id)
        if counterpart is not None:
            name = await self._user_name(actor_id)
            await self.notifier.notify(
                counterpart,
                f"{name} has marked the ride from "
                f"{ride.origin.label} to {ride.destination.label} as completed",
                NotificationType.RIDE_COMPLETED,
                ride.id,
            )
        return updated

    # ── details, edits and notes ──────────────────────────────────

    async def edit(self, ride_id: int, actor_id: int, **changes: Any) -> RideModel:
        """Change ride details.  Requester only, and only while pending."""
        model = await self._load(ride_id)
        if model.requester_id != actor_id:
            raise Forbidden("Only the requester can edit this ride")
        if model.status != RideStatus.PENDING:
            raise InvalidState("Only pending rides can be edited")

        fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        _validate_details(fields)
        if not await self.rides.update_if_pending(ride_id, is_edited=True, **fields):
            raise Conflict("Ride was accepted while editing, refresh and retry")
        logger.info("Ride %d edited by %d", ride_id, actor_id)
        return await self.rides.refresh(ride_id)

    async def get_for_viewer(self, ride_id: int, viewer_id: int) -> RideModel:
        """Participants and accepted contacts of the requester may look."""
        model = await self._load(ride_id)
        if to_entity(model).is_participant(viewer_id):
            return model
        if await self.contacts.is_accepted_contact(viewer_id, model.requester_id):
            return model
        raise Forbidden("Unauthorized to view this ride")

    async def _load_for_participant(self, ride_id: int, user_id: int) -> RideModel:
        model = await self._load(ride_id)
        if not to_entity(model).is_participant(user_id):
            raise Forbidden("You are not involved in this ride")
        return model

    async def list_notes(self, ride_id: int, user_id: int) -> list[RideNoteModel]:
        await self._load_for_participant(ride_id, user_id)
        return await self.notes.list_for_ride(ride_id)

    async def add_note(self, ride_id: int, user_id: int, text: str) -> RideNoteModel:
        model = await self._load_for_participant(ride_id, user_id)
        if not text.strip():
            raise InvalidRide("Note must not be empty")
        note = await self.notes.create(ride_id=ride_id, user_id=user_id, note=text)

        counterpart = to_entity(model).other_participant(user_id)
        if counterpart is not None:
            name = await self._user_name(user_id)
            await self.notifier.notify(
                counterpart,
                f"New message from {name} for ride {ride_id}",
                NotificationType.NEW_NOTE,
                ride_id,
            )
        return note
