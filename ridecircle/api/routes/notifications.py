"""
Notification endpoints
======================

GET  /api/v1/notifications        -- the caller's inbox, oldest first
POST /api/v1/notifications/read   -- mark some of them as read
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.api.dependencies import get_current_user_id, get_db
from ridecircle.api.middleware import limiter
from ridecircle.api.schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationResponse,
)
from ridecircle.config import settings
from ridecircle.infrastructure.repositories import NotificationRepository

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse], summary="List notifications")
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    unread_only: bool = False,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationRepository(db).list_for_user(user_id, unread_only)


@router.post("/read", response_model=MarkReadResponse, summary="Mark as read")
@limiter.limit(settings.rate_limit)
async def mark_read(
    request: Request,
    body: MarkReadRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationRepository(db).mark_read(
        user_id, body.notification_ids
    )
    return MarkReadResponse(updated=updated)
