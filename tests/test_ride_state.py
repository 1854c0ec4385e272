"""Unit tests for ride entity state transitions (State Pattern)."""

import pytest

from ridecircle.domain.entities import Contact, InvalidStateTransition, Ride
from ridecircle.domain.enums import ContactStatus, RideStatus
from ridecircle.domain.errors import Forbidden, InvalidState

REQUESTER, ACCEPTER, STRANGER = 1, 2, 3


def accepted_ride() -> Ride:
    return Ride(requester_id=REQUESTER, accepter_id=ACCEPTER, status=RideStatus.ACCEPTED)


class TestRideStateMachine:
    def test_initial_status_is_pending(self):
        ride = Ride(requester_id=REQUESTER)
        assert ride.status == RideStatus.PENDING
        assert ride.accepter_id is None
        assert ride.is_consistent

    def test_status_literals(self):
        assert [s.value for s in RideStatus] == [
            "pending",
            "accepted",
            "cancelled",
            "completed",
        ]
        assert [s.value for s in ContactStatus] == ["pending", "accepted"]

    # ── Valid transitions ─────────────────────────────────────────

    def test_accept_sets_accepter(self):
        ride = Ride(requester_id=REQUESTER)
        ride.accept(ACCEPTER)
        assert ride.status == RideStatus.ACCEPTED
        assert ride.accepter_id == ACCEPTER
        assert ride.is_consistent

    def test_cancel_offer_reverts_to_pending(self):
        ride = accepted_ride()
        ride.cancel_offer(ACCEPTER)
        assert ride.status == RideStatus.PENDING
        assert ride.accepter_id is None
        assert ride.is_consistent

    def test_requester_cancels_pending(self):
        ride = Ride(requester_id=REQUESTER)
        ride.cancel_request(REQUESTER)
        assert ride.status == RideStatus.CANCELLED

    def test_accepter_cancels_accepted_clears_accepter(self):
        ride = accepted_ride()
        ride.cancel_request(ACCEPTER)
        assert ride.status == RideStatus.CANCELLED
        assert ride.accepter_id is None
        assert ride.is_consistent

    @pytest.mark.parametrize("actor", [REQUESTER, ACCEPTER])
    def test_either_participant_completes(self, actor):
        ride = accepted_ride()
        ride.complete(actor)
        assert ride.status == RideStatus.COMPLETED
        assert ride.accepter_id == ACCEPTER
        assert ride.is_consistent

    # ── Guards ────────────────────────────────────────────────────

    def test_requester_cannot_accept_own_ride(self):
        with pytest.raises(Forbidden):
            Ride(requester_id=REQUESTER).accept(REQUESTER)

    def test_only_accepter_cancels_offer(self):
        with pytest.raises(Forbidden):
            accepted_ride().cancel_offer(REQUESTER)

    def test_cancel_offer_without_offer_is_invalid_state(self):
        for status in (RideStatus.PENDING, RideStatus.CANCELLED):
            with pytest.raises(InvalidState):
                Ride(requester_id=REQUESTER, status=status).cancel_offer(ACCEPTER)

    def test_stranger_cannot_cancel_or_complete(self):
        with pytest.raises(Forbidden):
            accepted_ride().cancel_request(STRANGER)
        with pytest.raises(Forbidden):
            accepted_ride().complete(STRANGER)

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_completed_fails(self):
        ride = Ride(requester_id=REQUESTER)
        with pytest.raises(InvalidStateTransition):
            ride.complete(REQUESTER)

    def test_accepting_accepted_ride_fails(self):
        with pytest.raises(InvalidState):
            accepted_ride().accept(STRANGER)

    @pytest.mark.parametrize("status", [RideStatus.CANCELLED, RideStatus.COMPLETED])
    def test_terminal_states_reject_everything(self, status):
        ride = Ride(requester_id=REQUESTER, status=status)
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.PENDING)
        with pytest.raises(InvalidStateTransition):
            ride.cancel_request(REQUESTER)

    def test_cancelled_ride_cannot_be_accepted(self):
        ride = Ride(requester_id=REQUESTER, status=RideStatus.CANCELLED)
        with pytest.raises(InvalidState):
            ride.accept(ACCEPTER)
        assert ride.accepter_id is None


class TestContactEntity:
    def test_pair_key_is_order_independent(self):
        assert Contact.pair_key(7, 3) == Contact.pair_key(3, 7) == (3, 7)

    def test_other_party(self):
        edge = Contact(user_id=1, contact_id=2)
        assert edge.other_party(1) == 2
        assert edge.other_party(2) == 1

    def test_addressed_party_accepts(self):
        edge = Contact(user_id=1, contact_id=2)
        edge.accept(2)
        assert edge.status == ContactStatus.ACCEPTED

    def test_initiator_cannot_accept(self):
        with pytest.raises(Forbidden):
            Contact(user_id=1, contact_id=2).accept(1)

    def test_already_accepted_cannot_be_accepted_again(self):
        edge = Contact(user_id=1, contact_id=2, status=ContactStatus.ACCEPTED)
        with pytest.raises(Forbidden):
            edge.accept(2)
