"""
One-hop contact-graph visibility.

A user sees the *pending* rides of the people they share an **accepted**
contact edge with, never their own.  Pending contact requests grant nothing.

Complexity: O(E + R) where E = edges touching the user and R = rides
scanned.  Recomputed on every call; there is no cache here.
"""

from __future__ import annotations

from typing import Iterable, Protocol, TypeVar

from .enums import ContactStatus, RideStatus


class EdgeLike(Protocol):
    user_id: int
    contact_id: int
    status: ContactStatus


class RideLike(Protocol):
    requester_id: int
    accepter_id: int | None
    status: RideStatus


R = TypeVar("R", bound=RideLike)


def connected_user_ids(user_id: int, edges: Iterable[EdgeLike]) -> set[int]:
    """Ids on the other side of every accepted edge touching *user_id*."""
    connected: set[int] = set()
    for edge in edges:
        if edge.status != ContactStatus.ACCEPTED:
            continue
        if edge.user_id == user_id:
            connected.add(edge.contact_id)
        elif edge.contact_id == user_id:
            connected.add(edge.user_id)
    connected.discard(user_id)
    return connected


def filter_available(
    user_id: int, contact_ids: set[int], rides: Iterable[R]
) -> list[R]:
    """Keep pending rides requested by a contact, excluding the user's own."""
    return [
        ride
        for ride in rides
        if ride.status == RideStatus.PENDING
        and ride.requester_id != user_id
        and ride.requester_id in contact_ids
    ]
