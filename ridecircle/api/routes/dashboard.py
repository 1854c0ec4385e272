"""
Dashboard endpoint
==================

GET /api/v1/dashboard -- rides and contacts in one polled payload

Responds with an ``ETag``; a request carrying a matching ``If-None-Match``
gets ``304 Not Modified`` with no body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ridecircle.api.dependencies import get_current_user_id, get_db
from ridecircle.api.etag import generate_etag, is_etag_match
from ridecircle.api.middleware import limiter
from ridecircle.api.routes.contacts import contact_dtos
from ridecircle.api.schemas import DashboardResponse, RideResponse
from ridecircle.config import settings
from ridecircle.services.visibility import VisibilityService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate"}


@router.get(
    "",
    response_model=DashboardResponse,
    summary="Rides and contacts for the dashboard",
    responses={304: {"description": "Unchanged since the given ETag"}},
)
@limiter.limit(settings.rate_limit)
async def dashboard(
    request: Request,
    if_none_match: Optional[str] = Header(None),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    rides, edges = await VisibilityService(db).dashboard(user_id)
    payload = DashboardResponse(
        rides=[RideResponse.model_validate(r) for r in rides],
        contacts=await contact_dtos(db, edges),
    ).model_dump(mode="json")

    etag = generate_etag(payload)
    headers = {**NO_STORE, "ETag": f'"{etag}"'}
    if is_etag_match(etag, if_none_match):
        return Response(status_code=304, headers=headers)
    return JSONResponse(content=payload, headers=headers)
