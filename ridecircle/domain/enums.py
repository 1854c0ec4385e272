"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.PENDING: {RideStatus.ACCEPTED, RideStatus.CANCELLED},
    RideStatus.ACCEPTED: {
        RideStatus.PENDING,  # offer cancelled by the accepter
        RideStatus.COMPLETED,
        RideStatus.CANCELLED,
    },
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({RideStatus.CANCELLED, RideStatus.COMPLETED})

# Statuses in which a ride carries an accepter
ASSIGNED_STATUSES = frozenset({RideStatus.ACCEPTED, RideStatus.COMPLETED})


class ContactStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class NotificationType(str, enum.Enum):
    CONTACT_REQUEST = "contactRequest"
    CONTACT_ACCEPTED = "contactAccepted"
    RIDE_ACCEPTED = "rideAccepted"
    RIDE_CANCELLED = "rideCancelled"
    RIDE_COMPLETED = "rideCompleted"
    NEW_NOTE = "newNote"
