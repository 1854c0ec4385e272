"""
Associated people endpoints
===========================

GET    /api/v1/associated-people        -- people you book rides for
POST   /api/v1/associated-people        -- save one
DELETE /api/v1/associated-people/{id}   -- forget one

A saved person can be passed as ``associated_person_id`` when creating a
ride to fill in the rider's name.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.api.dependencies import get_current_user_id, get_db
from ridecircle.api.middleware import limiter
from ridecircle.api.schemas import (
    AssociatedPersonCreateRequest,
    AssociatedPersonResponse,
    ErrorResponse,
)
from ridecircle.config import settings
from ridecircle.domain.errors import NotFound
from ridecircle.infrastructure.repositories import AssociatedPersonRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/associated-people", tags=["associated people"])


@router.get(
    "",
    response_model=list[AssociatedPersonResponse],
    summary="List saved riders",
)
@limiter.limit(settings.rate_limit)
async def list_associated_people(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await AssociatedPersonRepository(db).list_for_user(user_id)


@router.post(
    "",
    status_code=201,
    response_model=AssociatedPersonResponse,
    summary="Save a rider you book for",
)
@limiter.limit(settings.rate_limit)
async def create_associated_person(
    request: Request,
    body: AssociatedPersonCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    person = await AssociatedPersonRepository(db).create(
        user_id=user_id, name=body.name, relationship=body.relationship
    )
    logger.info("Associated person %d saved by %d", person.id, user_id)
    return person


@router.delete(
    "/{person_id}",
    status_code=204,
    summary="Remove a saved rider",
    responses={404: {"model": ErrorResponse, "description": "Not one of yours"}},
)
@limiter.limit(settings.rate_limit)
async def delete_associated_person(
    request: Request,
    person_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    repo = AssociatedPersonRepository(db)
    person = await repo.get_for_owner(person_id, user_id)
    if person is None:
        raise NotFound("Associated person not found")
    await repo.delete(person)
