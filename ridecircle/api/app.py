"""
FastAPI application factory.

* Registers routes for rides, contacts, users, associated people,
  notifications, dashboard and admin.
* Starts / stops the notification cleanup worker via lifespan events.
* Applies rate-limiting middleware and maps domain errors to HTTP codes.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridecircle.api.middleware import domain_error_handler, limiter
from ridecircle.api.routes import (
    admin,
    associated_people,
    contacts,
    dashboard,
    notifications,
    rides,
    users,
)
from ridecircle.domain.errors import RideCircleError
from ridecircle.infrastructure.redis_client import close_redis
from ridecircle.workers import cleanup as _cleanup

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the cleanup worker on startup; stop on shutdown."""
    await _cleanup.start_cleanup_loop()
    yield
    await _cleanup.stop_cleanup_loop()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="RideCircle API",
        description=(
            "Ride requests shared within a circle of trusted contacts.  "
            "Only accepted contacts can see and accept your rides; "
            "suggestions help you grow the circle."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors -> 403 / 404 / 409 / 422
    app.add_exception_handler(RideCircleError, domain_error_handler)

    # Routers
    for module in (
        rides,
        contacts,
        users,
        associated_people,
        notifications,
        dashboard,
        admin,
    ):
        app.include_router(module.router, prefix="/api/v1")

    return app
