"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  The one write that can race, accepting a
ride, goes through ``RideRepository.update_status``: a conditional
``UPDATE ... WHERE status = :expected`` whose row count tells the caller
whether it won.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AssociatedPersonModel,
    ContactModel,
    NotificationModel,
    RideModel,
    RideNoteModel,
    UserModel,
)
from ridecircle.domain.entities import Contact
from ridecircle.domain.enums import TERMINAL_STATUSES, ContactStatus, RideStatus
from ridecircle.domain.errors import DuplicateEdge


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def create_ride(
        self,
        *,
        requester_id: int,
        from_location: str,
        to_location: str,
        time: datetime,
        rider_name: str,
        from_lat: float | None = None,
        from_lon: float | None = None,
        to_lat: float | None = None,
        to_lon: float | None = None,
        rider_phone: str | None = None,
        note: str | None = None,
    ) -> RideModel:
        ride = RideModel(
            requester_id=requester_id,
            accepter_id=None,
            from_location=from_location,
            to_location=to_location,
            from_lat=from_lat,
            from_lon=from_lon,
            to_lat=to_lat,
            to_lon=to_lon,
            time=time,
            rider_name=rider_name,
            rider_phone=rider_phone,
            note=note,
            status=RideStatus.PENDING,
        )
        return await self.create(ride)

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def refresh(self, ride_id: int) -> Optional[RideModel]:
        """Re-read a ride, overwriting whatever the identity map holds."""
        return await self.session.get(RideModel, ride_id, populate_existing=True)

    async def update_status(
        self,
        ride_id: int,
        expected_status: RideStatus,
        new_status: RideStatus,
        **extra_fields: Any,
    ) -> bool:
        """Compare-and-swap on ``status``.  Returns False if another writer won."""
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.status == expected_status)
            .values(status=new_status, **extra_fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_if_pending(self, ride_id: int, **fields: Any) -> bool:
        """Edit ride details only while nobody has accepted it."""
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.status == RideStatus.PENDING)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ── scans ─────────────────────────────────────────────────────

    async def get_pending_by_requesters(
        self,
        requester_ids: Iterable[int],
        exclude_user_id: int,
        limit: int | None = None,
    ) -> list[RideModel]:
        ids = list(requester_ids)
        if not ids:
            return []
        query = (
            select(RideModel)
            .where(
                RideModel.status == RideStatus.PENDING,
                RideModel.requester_id.in_(ids),
                RideModel.requester_id != exclude_user_id,
            )
            .order_by(RideModel.time, RideModel.id)
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_touching_users(
        self, user_ids: Iterable[int], exclude_user_id: int
    ) -> list[RideModel]:
        """Rides requested or accepted by any of *user_ids*, minus the
        rides *exclude_user_id* takes part in."""
        ids = list(user_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(RideModel).where(
                or_(
                    RideModel.requester_id.in_(ids),
                    RideModel.accepter_id.in_(ids),
                ),
                RideModel.requester_id != exclude_user_id,
                or_(
                    RideModel.accepter_id.is_(None),
                    RideModel.accepter_id != exclude_user_id,
                ),
            )
        )
        return list(result.scalars().all())

    async def get_dashboard_rides(
        self, user_id: int, contact_ids: Iterable[int], limit: int
    ) -> list[RideModel]:
        """The user's own rides plus every ride requested by a contact."""
        conditions = [
            RideModel.requester_id == user_id,
            RideModel.accepter_id == user_id,
        ]
        ids = list(contact_ids)
        if ids:
            conditions.append(RideModel.requester_id.in_(ids))
        result = await self.session.execute(
            select(RideModel)
            .where(or_(*conditions))
            .order_by(RideModel.created_at.desc(), RideModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_history(
        self,
        requester_id: int,
        *,
        status: RideStatus | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[RideModel], int]:
        """One page of a requester's rides, newest first, plus the total."""
        conditions = [RideModel.requester_id == requester_id]
        if status is not None:
            conditions.append(RideModel.status == status)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    RideModel.from_location.ilike(pattern),
                    RideModel.to_location.ilike(pattern),
                )
            )

        total = await self.session.execute(
            select(func.count()).select_from(RideModel).where(*conditions)
        )
        result = await self.session.execute(
            select(RideModel)
            .where(*conditions)
            .order_by(RideModel.time.desc(), RideModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total.scalar() or 0

    async def count_offered(self, user_id: int) -> int:
        """Rides the user requested (offered up for others to fulfil)."""
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(RideModel.requester_id == user_id)
        )
        return result.scalar() or 0

    async def count_accepted(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(RideModel.accepter_id == user_id)
        )
        return result.scalar() or 0

    async def cancel_all_for_user(self, user_id: int) -> int:
        """Soft-cancel every non-terminal ride the user takes part in."""
        result = await self.session.execute(
            update(RideModel)
            .where(
                or_(
                    RideModel.requester_id == user_id,
                    RideModel.accepter_id == user_id,
                ),
                RideModel.status.not_in(list(TERMINAL_STATUSES)),
            )
            .values(status=RideStatus.CANCELLED, accepter_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


# How the unique pair constraint shows up in PostgreSQL / SQLite messages
_PAIR_VIOLATION_MARKERS = ("uq_contacts_pair", "contacts.user_low, contacts.user_high")


def _is_pair_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _PAIR_VIOLATION_MARKERS)


class ContactRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, contact_id: int) -> Optional[ContactModel]:
        return await self.session.get(ContactModel, contact_id)

    async def find_between(self, a: int, b: int) -> Optional[ContactModel]:
        """The edge connecting *a* and *b* in either direction, if any."""
        low, high = Contact.pair_key(a, b)
        result = await self.session.execute(
            select(ContactModel).where(
                ContactModel.user_low == low, ContactModel.user_high == high
            )
        )
        return result.scalar_one_or_none()

    async def create(self, initiator_id: int, target_id: int) -> ContactModel:
        low, high = Contact.pair_key(initiator_id, target_id)
        contact = ContactModel(
            user_id=initiator_id,
            contact_id=target_id,
            user_low=low,
            user_high=high,
            status=ContactStatus.PENDING,
        )
        self.session.add(contact)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            if _is_pair_violation(exc):
                raise DuplicateEdge(
                    "A contact already exists between these users"
                ) from exc
            raise
        return contact

    async def edges_of(self, user_id: int) -> list[ContactModel]:
        result = await self.session.execute(
            select(ContactModel)
            .where(
                or_(
                    ContactModel.user_id == user_id,
                    ContactModel.contact_id == user_id,
                )
            )
            .order_by(ContactModel.id)
        )
        return list(result.scalars().all())

    async def accepted_edges_touching(
        self, user_ids: Iterable[int]
    ) -> list[ContactModel]:
        ids = list(user_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(ContactModel).where(
                ContactModel.status == ContactStatus.ACCEPTED,
                or_(
                    ContactModel.user_id.in_(ids),
                    ContactModel.contact_id.in_(ids),
                ),
            )
        )
        return list(result.scalars().all())

    async def set_status(
        self, contact: ContactModel, status: ContactStatus
    ) -> ContactModel:
        contact.status = status
        await self.session.flush()
        return contact

    async def delete(self, contact: ContactModel) -> None:
        await self.session.delete(contact)
        await self.session.flush()

    async def delete_for_user(self, user_id: int) -> int:
        result = await self.session.execute(
            delete(ContactModel)
            .where(
                or_(
                    ContactModel.user_id == user_id,
                    ContactModel.contact_id == user_id,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(
        self,
        *,
        user_id: int,
        message: str,
        type: str,
        related_id: int | None = None,
    ) -> NotificationModel:
        notification = NotificationModel(
            user_id=user_id, message=message, type=type, related_id=related_id
        )
        self.session.add(notification)
        return notification

    async def list_for_user(
        self, user_id: int, unread_only: bool = False
    ) -> list[NotificationModel]:
        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(NotificationModel.created_at, NotificationModel.id)
        )
        return list(result.scalars().all())

    async def mark_read(self, user_id: int, notification_ids: Iterable[int]) -> int:
        ids = list(notification_ids)
        if not ids:
            return 0
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.id.in_(ids),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def prune_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(NotificationModel)
            .where(NotificationModel.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def prune_overflow(self, max_per_user: int) -> int:
        """Keep only the newest *max_per_user* notifications of every user."""
        ranked = select(
            NotificationModel.id,
            func.row_number()
            .over(
                partition_by=NotificationModel.user_id,
                order_by=(
                    NotificationModel.created_at.desc(),
                    NotificationModel.id.desc(),
                ),
            )
            .label("rank"),
        ).subquery()
        result = await self.session.execute(
            delete(NotificationModel)
            .where(
                NotificationModel.id.in_(
                    select(ranked.c.id).where(ranked.c.rank > max_per_user)
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_for_user(self, user_id: int) -> int:
        result = await self.session.execute(
            delete(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class RideNoteRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, *, ride_id: int, user_id: int, note: str) -> RideNoteModel:
        model = RideNoteModel(ride_id=ride_id, user_id=user_id, note=note)
        self.session.add(model)
        await self.session.flush()
        return model

    async def list_for_ride(self, ride_id: int) -> list[RideNoteModel]:
        result = await self.session.execute(
            select(RideNoteModel)
            .where(RideNoteModel.ride_id == ride_id)
            .order_by(RideNoteModel.created_at, RideNoteModel.id)
        )
        return list(result.scalars().all())


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        name: str,
        phone: str,
        email: str,
        country_code: str | None = None,
        password_hash: str | None = None,
        is_verified: bool = False,
    ) -> UserModel:
        user = UserModel(
            name=name,
            phone=phone,
            email=email,
            country_code=country_code,
            password_hash=password_hash,
            is_verified=is_verified,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_phone(self, phone: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.phone == phone)
        )
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, UserModel]:
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(ids))
        )
        return {user.id: user for user in result.scalars().all()}

    async def search(
        self, query: str, exclude_user_id: int, limit: int = 7
    ) -> list[UserModel]:
        pattern = f"%{query}%"
        result = await self.session.execute(
            select(UserModel)
            .where(
                or_(UserModel.name.ilike(pattern), UserModel.phone.ilike(pattern)),
                UserModel.id != exclude_user_id,
                UserModel.deleted_at.is_(None),
            )
            .order_by(UserModel.name, UserModel.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def anonymize(self, user: UserModel) -> UserModel:
        """Strip personal data and mark the account deleted."""
        user.name = "Deleted user"
        user.phone = f"deleted-{user.id}"
        user.email = f"deleted-{user.id}@invalid"
        user.password_hash = None
        user.is_verified = False
        user.deleted_at = datetime.now(timezone.utc)
        await self.session.flush()
        return user


class AssociatedPersonRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, user_id: int, name: str, relationship: str
    ) -> AssociatedPersonModel:
        person = AssociatedPersonModel(
            user_id=user_id, name=name, relationship=relationship
        )
        self.session.add(person)
        await self.session.flush()
        return person

    async def get_for_owner(
        self, person_id: int, user_id: int
    ) -> Optional[AssociatedPersonModel]:
        """The person if it exists *and* belongs to *user_id*."""
        person = await self.session.get(AssociatedPersonModel, person_id)
        if person is None or person.user_id != user_id:
            return None
        return person

    async def list_for_user(self, user_id: int) -> list[AssociatedPersonModel]:
        result = await self.session.execute(
            select(AssociatedPersonModel)
            .where(AssociatedPersonModel.user_id == user_id)
            .order_by(AssociatedPersonModel.name, AssociatedPersonModel.id)
        )
        return list(result.scalars().all())

    async def delete(self, person: AssociatedPersonModel) -> None:
        await self.session.delete(person)
        await self.session.flush()

    async def delete_for_user(self, user_id: int) -> int:
        result = await self.session.execute(
            delete(AssociatedPersonModel)
            .where(AssociatedPersonModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
