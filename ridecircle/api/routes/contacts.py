"""
Contact endpoints
=================

GET    /api/v1/contacts                  -- every edge touching the caller
POST   /api/v1/contacts                  -- send a contact request
POST   /api/v1/contacts/{id}/accept      -- accept a request addressed to you
DELETE /api/v1/contacts/{id}             -- remove an edge (either party)
GET    /api/v1/contacts/suggestions      -- people you may know
"""

from typing import Iterable

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.api.dependencies import get_current_user_id, get_db
from ridecircle.api.middleware import limiter
from ridecircle.api.schemas import (
    ContactCreateRequest,
    ContactResponse,
    ErrorResponse,
    SuggestionResponse,
    UserSummary,
)
from ridecircle.config import settings
from ridecircle.infrastructure.models import ContactModel
from ridecircle.infrastructure.repositories import UserRepository
from ridecircle.services.contacts import ContactService
from ridecircle.services.suggestions import SuggestionService

router = APIRouter(prefix="/contacts", tags=["contacts"])


async def contact_dtos(
    db: AsyncSession, edges: Iterable[ContactModel]
) -> list[ContactResponse]:
    """Attach name / phone of both parties to each edge."""
    edges = list(edges)
    ids = {e.user_id for e in edges} | {e.contact_id for e in edges}
    users = await UserRepository(db).get_many(ids)

    def summary(user_id: int):
        user = users.get(user_id)
        return UserSummary.model_validate(user) if user else None

    return [
        ContactResponse(
            id=e.id,
            user_id=e.user_id,
            contact_id=e.contact_id,
            status=e.status,
            created_at=e.created_at,
            user=summary(e.user_id),
            contact=summary(e.contact_id),
        )
        for e in edges
    ]


@router.get("", response_model=list[ContactResponse], summary="List contacts")
@limiter.limit(settings.rate_limit)
async def list_contacts(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    edges = await ContactService(db).edges_of(user_id)
    return await contact_dtos(db, edges)


@router.get(
    "/suggestions",
    response_model=list[SuggestionResponse],
    summary="Suggested contacts",
    description=(
        "Non-contacts ranked by the number of mutual contacts, then by the "
        "number of rides they shared with your contacts."
    ),
)
@limiter.limit(settings.rate_limit)
async def suggested_contacts(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    suggestions = await SuggestionService(db).suggest(user_id)
    users = await UserRepository(db).get_many(s.user_id for s in suggestions)
    return [
        SuggestionResponse(
            id=s.user_id,
            name=users[s.user_id].name,
            phone=users[s.user_id].phone,
            mutual_contacts=s.mutual_contacts,
            common_rides=s.common_rides,
            mutual_contact_ids=list(s.bridge_ids),
        )
        for s in suggestions
        if s.user_id in users and users[s.user_id].deleted_at is None
    ]


@router.post(
    "",
    status_code=201,
    response_model=ContactResponse,
    summary="Send a contact request",
    responses={
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Contact already exists"},
    },
)
@limiter.limit(settings.rate_limit)
async def create_contact(
    request: Request,
    body: ContactCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    service = ContactService(db)
    if body.contact_phone is not None:
        contact = await service.request_by_phone(user_id, body.contact_phone)
    else:
        contact = await service.request(user_id, body.contact_id)
    return (await contact_dtos(db, [contact]))[0]


@router.post(
    "/{contact_id}/accept",
    response_model=ContactResponse,
    summary="Accept a contact request addressed to you",
    responses={
        403: {"model": ErrorResponse, "description": "Not the addressed user"},
        404: {"model": ErrorResponse, "description": "Contact request not found"},
    },
)
@limiter.limit(settings.rate_limit)
async def accept_contact(
    request: Request,
    contact_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    contact = await ContactService(db).accept(contact_id, user_id)
    return (await contact_dtos(db, [contact]))[0]


@router.delete(
    "/{contact_id}",
    status_code=204,
    summary="Remove a contact",
)
@limiter.limit(settings.rate_limit)
async def delete_contact(
    request: Request,
    contact_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await ContactService(db).remove(contact_id, user_id)
