"""
SQLAlchemy ORM models.

Tables
------
* ``users``          -- registered users (identity anchor)
* ``contacts``       -- one row per unordered user pair
* ``rides``          -- ride requests and their lifecycle status
* ``notifications``  -- per-user inbox, append-only except ``is_read``
* ``ride_notes``     -- message thread between the two ride participants
* ``associated_people`` -- people a user books rides for

Indexes
-------
* **Unique** on ``contacts(user_low, user_high)``: the normalised pair key
  makes "one edge per unordered pair" a single equality check.
* **B-Tree** on ride ``status``, ``requester_id``, ``accepter_id`` for the
  visibility and suggestion scans.

Status columns store the lowercase literals (``"pending"``, ...) verbatim.
Server-side defaults are fetched on flush (``eager_defaults``).
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base
from ridecircle.domain.enums import ContactStatus, RideStatus


def _values(enum_cls):
    return [member.value for member in enum_cls]


class UserModel(Base):
    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(20), unique=True, nullable=False)  # E.164
    country_code = Column(String(2), nullable=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Set when the account is deleted; the row stays so ride history keeps
    # valid foreign keys.
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class ContactModel(Base):
    __tablename__ = "contacts"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    contact_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # Normalised pair, min(user_id, contact_id) / max(user_id, contact_id)
    user_low = Column(Integer, nullable=False)
    user_high = Column(Integer, nullable=False)
    status = Column(
        Enum(
            ContactStatus,
            name="contactstatus",
            values_callable=_values,
            native_enum=False,
        ),
        default=ContactStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_low", "user_high", name="uq_contacts_pair"),
        CheckConstraint("user_low < user_high", name="ck_contacts_pair_order"),
        Index("idx_contacts_user", "user_id"),
        Index("idx_contacts_contact", "contact_id"),
        Index("idx_contacts_status", "status"),
    )


class RideModel(Base):
    __tablename__ = "rides"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    accepter_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    from_lat = Column(Float, nullable=True)
    from_lon = Column(Float, nullable=True)
    to_lat = Column(Float, nullable=True)
    to_lon = Column(Float, nullable=True)
    time = Column(DateTime(timezone=True), nullable=False)

    status = Column(
        Enum(
            RideStatus,
            name="ridestatus",
            values_callable=_values,
            native_enum=False,
        ),
        default=RideStatus.PENDING,
        nullable=False,
    )
    rider_name = Column(String(120), nullable=False)
    rider_phone = Column(String(20), nullable=True)
    note = Column(Text, nullable=True)
    is_edited = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "(accepter_id IS NOT NULL) = (status IN ('accepted', 'completed'))",
            name="ck_rides_accepter_matches_status",
        ),
        Index("idx_rides_status", "status"),
        Index("idx_rides_requester", "requester_id"),
        Index("idx_rides_accepter", "accepter_id"),
        Index("idx_rides_time", "time"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message = Column(Text, nullable=False)
    type = Column(String(40), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    related_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_user", "user_id", "is_read"),
        Index("idx_notifications_created", "created_at"),
    )


class RideNoteModel(Base):
    __tablename__ = "ride_notes"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(
        Integer, ForeignKey("rides.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_ride_notes_ride", "ride_id"),)


class AssociatedPersonModel(Base):
    """Someone a user regularly books rides for (child, parent, ...)."""

    __tablename__ = "associated_people"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String(120), nullable=False)
    relationship = Column(String(60), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_associated_people_user", "user_id"),)
