"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride``: enforces valid lifecycle transitions
  (PENDING -> ACCEPTED -> COMPLETED | CANCELLED, ACCEPTED -> PENDING when
  the offer is withdrawn) together with *who* may fire each one.
- ``Contact`` encodes the unordered-pair identity of a relationship and the
  rule that only the addressed party may accept it.

Entities are plain dataclasses; persistence lives in
``ridecircle.infrastructure``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import ASSIGNED_STATUSES, RIDE_TRANSITIONS, ContactStatus, RideStatus
from .errors import Forbidden, InvalidState


class InvalidStateTransition(InvalidState):
    """Raised when a ride status change violates the state machine."""


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    label: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: Optional[int] = None
    requester_id: int = 0
    accepter_id: Optional[int] = None
    origin: Location = field(default_factory=lambda: Location(""))
    destination: Location = field(default_factory=lambda: Location(""))
    time: Optional[datetime] = None
    status: RideStatus = RideStatus.PENDING
    rider_name: str = ""
    rider_phone: Optional[str] = None
    note: Optional[str] = None
    is_edited: bool = False

    # ── invariants ────────────────────────────────────────────────

    @property
    def is_consistent(self) -> bool:
        """``accepter_id`` is set exactly when the ride is accepted/completed."""
        return (self.accepter_id is not None) == (self.status in ASSIGNED_STATUSES)

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.requester_id, self.accepter_id)

    def other_participant(self, user_id: int) -> Optional[int]:
        if user_id == self.requester_id:
            return self.accepter_id
        return self.requester_id

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    # ── guarded transitions ───────────────────────────────────────

    def accept(self, actor_id: int) -> None:
        """Assign *actor_id* as accepter.

        The contact-graph check is done by the caller, which owns the
        graph; this only guards the actor / state pair.
        """
        if actor_id == self.requester_id:
            raise Forbidden("You cannot accept your own ride")
        self.transition_to(RideStatus.ACCEPTED)
        self.accepter_id = actor_id

    def cancel_offer(self, actor_id: int) -> None:
        """Withdraw an offer.  Outside ``accepted`` there is no offer to
        withdraw, so that is an invalid state rather than a wrong actor."""
        if self.status == RideStatus.ACCEPTED and self.accepter_id != actor_id:
            raise Forbidden("You are not the accepter of this ride")
        self.transition_to(RideStatus.PENDING)
        self.accepter_id = None

    def cancel_request(self, actor_id: int) -> None:
        if not self.is_participant(actor_id):
            raise Forbidden("You are not involved in this ride")
        self.transition_to(RideStatus.CANCELLED)
        self.accepter_id = None

    def complete(self, actor_id: int) -> None:
        if not self.is_participant(actor_id):
            raise Forbidden("You are not involved in this ride")
        self.transition_to(RideStatus.COMPLETED)


@dataclass
class Contact:
    id: Optional[int] = None
    user_id: int = 0  # initiator
    contact_id: int = 0  # addressed party
    status: ContactStatus = ContactStatus.PENDING
    created_at: Optional[datetime] = None

    @staticmethod
    def pair_key(a: int, b: int) -> tuple[int, int]:
        """Canonical key of the unordered pair ``{a, b}``."""
        return (a, b) if a <= b else (b, a)

    @property
    def key(self) -> tuple[int, int]:
        return self.pair_key(self.user_id, self.contact_id)

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user_id, self.contact_id)

    def other_party(self, user_id: int) -> int:
        return self.contact_id if user_id == self.user_id else self.user_id

    def accept(self, accepter_id: int) -> None:
        if accepter_id != self.contact_id:
            raise Forbidden("Only the addressed user can accept a contact request")
        if self.status != ContactStatus.PENDING:
            raise Forbidden("Contact request is not pending")
        self.status = ContactStatus.ACCEPTED
