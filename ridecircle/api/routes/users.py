"""
User endpoints
==============

GET    /api/v1/users/search?query=...   -- find people by name / phone
GET    /api/v1/users/{user_id}/stats    -- rides offered / accepted
DELETE /api/v1/users/me                 -- delete the caller's account
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.api.dependencies import get_current_user_id, get_db
from ridecircle.api.middleware import limiter
from ridecircle.api.schemas import UserSearchResult, UserStatsResponse
from ridecircle.config import settings
from ridecircle.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/search",
    response_model=list[UserSearchResult],
    summary="Search users, annotated with your contact status",
)
@limiter.limit(settings.rate_limit)
async def search_users(
    request: Request,
    query: str = Query(..., min_length=1, max_length=100),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    hits = await UserService(db).search(query, user_id)
    return [
        UserSearchResult(
            id=hit.user.id,
            name=hit.user.name,
            phone=hit.user.phone,
            contact_status=hit.contact.status if hit.contact else None,
            contact_id=hit.contact.id if hit.contact else None,
        )
        for hit in hits
    ]


@router.get(
    "/{target_id}/stats",
    response_model=UserStatsResponse,
    summary="Ride counters for a user",
)
@limiter.limit(settings.rate_limit)
async def user_stats(
    request: Request,
    target_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return UserStatsResponse(**await UserService(db).stats(target_id))


@router.delete("/me", status_code=204, summary="Delete your account")
@limiter.limit(settings.rate_limit)
async def delete_account(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).delete_account(user_id)
