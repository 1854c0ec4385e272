"""
Contact Suggestion Ranking
==========================

1. **Frontier**       -- ``C`` = accepted contacts of the user.  Empty ``C``
   means there is no second hop, so no suggestions.
2. **Mutual contacts** -- walk every accepted edge touching ``C``; the
   endpoint outside ``C ∪ {user}`` is a candidate and the endpoint inside
   ``C`` is a *bridge*.  The score is the number of *distinct* bridges, so
   duplicated edges never double count.
3. **Common rides**   -- for every ride with a participant in ``C`` that the
   user did not take part in, each participant outside ``C ∪ {user}`` scores
   one per ride.
4. **Ranking**        -- ``(mutual_contacts desc, common_rides desc, id asc)``
   truncated to ``limit``.  The id makes equal scores reproducible.

Complexity
----------
Let E = accepted edges touching ``C``, R = rides touching ``C`` and
K = candidates.

* Mutual pass:  O(E)
* Ride pass:    O(R)
* Sort:         O(K log K)

The engine is read-only; callers feed it the rows they fetched.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Iterable

from .enums import ContactStatus
from .visibility import EdgeLike, RideLike


@dataclass(frozen=True)
class Suggestion:
    user_id: int
    mutual_contacts: int
    common_rides: int
    bridge_ids: tuple[int, ...] = ()

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (-self.mutual_contacts, -self.common_rides, self.user_id)


def mutual_contact_bridges(
    user_id: int, contact_ids: set[int], edges: Iterable[EdgeLike]
) -> dict[int, set[int]]:
    """Map each second-hop candidate to the set of contacts bridging to it."""
    excluded = contact_ids | {user_id}
    bridges: dict[int, set[int]] = defaultdict(set)
    for edge in edges:
        if edge.status != ContactStatus.ACCEPTED:
            continue
        a, b = edge.user_id, edge.contact_id
        if a in contact_ids and b not in excluded:
            bridges[b].add(a)
        elif b in contact_ids and a not in excluded:
            bridges[a].add(b)
    return dict(bridges)


def common_ride_counts(
    user_id: int, contact_ids: set[int], rides: Iterable[RideLike]
) -> Counter[int]:
    """Count rides each non-contact shared with one of the user's contacts."""
    counts: Counter[int] = Counter()
    for ride in rides:
        participants = {ride.requester_id, ride.accepter_id} - {None}
        if user_id in participants or not participants & contact_ids:
            continue
        for participant in participants:
            if participant not in contact_ids:
                counts[participant] += 1
    return counts


def rank_suggestions(
    user_id: int,
    contact_ids: set[int],
    edges: Iterable[EdgeLike],
    rides: Iterable[RideLike],
    limit: int = 10,
) -> list[Suggestion]:
    if not contact_ids:
        return []

    bridges = mutual_contact_bridges(user_id, contact_ids, edges)
    rides_shared = common_ride_counts(user_id, contact_ids, rides)

    candidates = (set(bridges) | set(rides_shared)) - contact_ids - {user_id}
    suggestions = [
        Suggestion(
            user_id=candidate,
            mutual_contacts=len(bridges.get(candidate, ())),
            common_rides=rides_shared.get(candidate, 0),
            bridge_ids=tuple(sorted(bridges.get(candidate, ()))),
        )
        for candidate in candidates
    ]
    suggestions.sort(key=lambda s: s.sort_key)
    return suggestions[:limit]
