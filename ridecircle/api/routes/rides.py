"""
Ride endpoints
==============

POST  /api/v1/rides                       -- create a ride request
GET   /api/v1/rides/available             -- pending rides of accepted contacts
GET   /api/v1/rides/history               -- requester's rides, paginated
GET   /api/v1/rides/{ride_id}             -- ride details
PUT   /api/v1/rides/{ride_id}             -- edit a pending ride
POST  /api/v1/rides/{ride_id}/accept      -- offer to fulfil the ride
POST  /api/v1/rides/{ride_id}/cancel-offer   -- withdraw an offer
POST  /api/v1/rides/{ride_id}/cancel-request -- cancel the ride
POST  /api/v1/rides/{ride_id}/complete    -- mark as completed
GET   /api/v1/rides/{ride_id}/notes       -- message thread
POST  /api/v1/rides/{ride_id}/notes       -- post a message

The acting user comes from the ``X-User-Id`` header.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.api.dependencies import get_current_user_id, get_db
from ridecircle.api.middleware import limiter
from ridecircle.api.schemas import (
    ErrorResponse,
    RideCreateRequest,
    RideHistoryResponse,
    RideNoteCreateRequest,
    RideNoteResponse,
    RideResponse,
    RideUpdateRequest,
)
from ridecircle.config import settings
from ridecircle.domain.enums import RideStatus
from ridecircle.infrastructure.repositories import RideRepository
from ridecircle.services.rides import RideService
from ridecircle.services.visibility import VisibilityService

router = APIRouter(prefix="/rides", tags=["rides"])

_TRANSITION_ERRORS = {
    403: {"model": ErrorResponse, "description": "Actor not allowed"},
    404: {"model": ErrorResponse, "description": "Ride not found"},
    409: {"model": ErrorResponse, "description": "Invalid state or lost race"},
}


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Create a ride request",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).create(user_id, **body.model_dump())


@router.get(
    "/available",
    response_model=list[RideResponse],
    summary="Pending rides requested by accepted contacts",
)
@limiter.limit(settings.rate_limit)
async def available_rides(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await VisibilityService(db).available_rides(user_id)


@router.get(
    "/history",
    response_model=RideHistoryResponse,
    summary="The caller's own ride requests, newest first",
)
@limiter.limit(settings.rate_limit)
async def ride_history(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.history_page_size, ge=1, le=100),
    status: Optional[RideStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    repo = RideRepository(db)

    async def fetch(page_number: int):
        return await repo.get_history(
            user_id,
            status=status,
            search=search,
            offset=(page_number - 1) * limit,
            limit=limit,
        )

    rides, total = await fetch(page)
    total_pages = math.ceil(total / limit)
    if page > (total_pages or 1):
        # Past the end: serve the last page instead of an empty one
        page = total_pages or 1
        rides, total = await fetch(page)
    return RideHistoryResponse(
        rides=[RideResponse.model_validate(r) for r in rides],
        total=total,
        page=page,
        total_pages=total_pages,
    )


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get ride details",
    responses={403: _TRANSITION_ERRORS[403], 404: _TRANSITION_ERRORS[404]},
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).get_for_viewer(ride_id, user_id)


@router.put(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Edit a pending ride",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def edit_ride(
    request: Request,
    ride_id: int,
    body: RideUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    return await RideService(db).edit(ride_id, user_id, **changes)


@router.post(
    "/{ride_id}/accept",
    response_model=RideResponse,
    summary="Accept (offer to fulfil) a pending ride",
    description=(
        "Only an accepted contact of the requester may accept.  If another "
        "contact got there first the response is 409 and the client should "
        "refresh."
    ),
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def accept_ride(
    request: Request,
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).accept(ride_id, user_id)


@router.post(
    "/{ride_id}/cancel-offer",
    response_model=RideResponse,
    summary="Withdraw an offer; the ride goes back to pending",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def cancel_offer(
    request: Request,
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).cancel_offer(ride_id, user_id)


@router.post(
    "/{ride_id}/cancel-request",
    response_model=RideResponse,
    summary="Cancel the ride (terminal)",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def cancel_request(
    request: Request,
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).cancel_request(ride_id, user_id)


@router.post(
    "/{ride_id}/complete",
    response_model=RideResponse,
    summary="Mark an accepted ride as completed",
    responses=_TRANSITION_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def complete_ride(
    request: Request,
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).complete(ride_id, user_id)


@router.get(
    "/{ride_id}/notes",
    response_model=list[RideNoteResponse],
    summary="Messages between the ride participants",
)
@limiter.limit(settings.rate_limit)
async def list_notes(
    request: Request,
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).list_notes(ride_id, user_id)


@router.post(
    "/{ride_id}/notes",
    status_code=201,
    response_model=RideNoteResponse,
    summary="Post a message to the other participant",
)
@limiter.limit(settings.rate_limit)
async def add_note(
    request: Request,
    ride_id: int,
    body: RideNoteCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await RideService(db).add_note(ride_id, user_id, body.note)
