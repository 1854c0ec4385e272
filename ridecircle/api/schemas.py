"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ridecircle.domain.enums import ContactStatus, RideStatus


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    from_lat: Optional[float] = Field(None, ge=-90, le=90)
    from_lon: Optional[float] = Field(None, ge=-180, le=180)
    to_lat: Optional[float] = Field(None, ge=-90, le=90)
    to_lon: Optional[float] = Field(None, ge=-180, le=180)
    time: datetime
    rider_name: Optional[str] = Field(
        None,
        max_length=120,
        description=(
            "Who is riding; defaults to the associated person's name, "
            "then to the requester's."
        ),
    )
    rider_phone: Optional[str] = Field(None, max_length=20)
    note: Optional[str] = None
    associated_person_id: Optional[int] = None


class RideUpdateRequest(BaseModel):
    from_location: Optional[str] = Field(None, min_length=1, max_length=255)
    to_location: Optional[str] = Field(None, min_length=1, max_length=255)
    from_lat: Optional[float] = Field(None, ge=-90, le=90)
    from_lon: Optional[float] = Field(None, ge=-180, le=180)
    to_lat: Optional[float] = Field(None, ge=-90, le=90)
    to_lon: Optional[float] = Field(None, ge=-180, le=180)
    time: Optional[datetime] = None
    rider_name: Optional[str] = Field(None, max_length=120)
    rider_phone: Optional[str] = Field(None, max_length=20)
    note: Optional[str] = None


class ContactCreateRequest(BaseModel):
    contact_id: Optional[int] = None
    contact_phone: Optional[str] = Field(
        None, max_length=20, description="E.164, already normalised."
    )

    @model_validator(mode="after")
    def _one_target(self):
        if (self.contact_id is None) == (self.contact_phone is None):
            raise ValueError("Provide exactly one of contact_id or contact_phone")
        return self


class RideNoteCreateRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)


class MarkReadRequest(BaseModel):
    notification_ids: list[int] = Field(..., min_length=1)


class AssociatedPersonCreateRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., min_length=1, max_length=120)
    relationship: str = Field(..., min_length=1, max_length=60)


# ── Responses ─────────────────────────────────────────────────────────


class UserSummary(BaseModel):
    id: int
    name: str
    phone: str

    model_config = {"from_attributes": True}


class RideResponse(BaseModel):
    id: int
    requester_id: int
    accepter_id: Optional[int] = None
    from_location: str
    to_location: str
    from_lat: Optional[float] = None
    from_lon: Optional[float] = None
    to_lat: Optional[float] = None
    to_lon: Optional[float] = None
    time: datetime
    status: RideStatus
    rider_name: str
    rider_phone: Optional[str] = None
    note: Optional[str] = None
    is_edited: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RideHistoryResponse(BaseModel):
    rides: list[RideResponse]
    total: int
    page: int
    total_pages: int


class RideNoteResponse(BaseModel):
    id: int
    ride_id: int
    user_id: int
    note: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContactResponse(BaseModel):
    id: int
    user_id: int
    contact_id: int
    status: ContactStatus
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    contact: Optional[UserSummary] = None

    model_config = {"from_attributes": True}


class SuggestionResponse(BaseModel):
    id: int
    name: str
    phone: str
    mutual_contacts: int
    common_rides: int
    mutual_contact_ids: list[int] = []


class UserSearchResult(BaseModel):
    id: int
    name: str
    phone: str
    contact_status: Optional[ContactStatus] = None
    contact_id: Optional[int] = None


class UserStatsResponse(BaseModel):
    rides_offered: int
    rides_accepted: int


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    message: str
    type: str
    is_read: bool
    related_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MarkReadResponse(BaseModel):
    updated: int


class AssociatedPersonResponse(BaseModel):
    id: int
    user_id: int
    name: str
    relationship: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    rides: list[RideResponse]
    contacts: list[ContactResponse]


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
