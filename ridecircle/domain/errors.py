"""Domain error taxonomy.

All errors are terminal and synchronous: the service layer raises them, the
HTTP layer maps them to status codes.  Only ``Conflict`` is worth a retry,
and only after the client has re-fetched the ride.
"""


class RideCircleError(Exception):
    """Base class for every domain failure."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(RideCircleError):
    """Referenced ride / contact / user does not exist."""

    status_code = 404


class Forbidden(RideCircleError):
    """Actor lacks the relationship the transition requires."""

    status_code = 403


class Conflict(RideCircleError):
    """A concurrent writer changed the ride first (lost compare-and-swap)."""

    status_code = 409


class DuplicateEdge(RideCircleError):
    """A contact record already connects the unordered pair."""

    status_code = 409


class InvalidState(RideCircleError):
    """The current status does not permit the attempted transition."""

    status_code = 409


class InvalidRide(RideCircleError):
    """Ride details are missing or malformed."""

    status_code = 422
