"""Initial schema: users, contacts, rides, notifications, ride notes.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

RIDE_STATUSES = ("pending", "accepted", "cancelled", "completed")
CONTACT_STATUSES = ("pending", "accepted")


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(20), unique=True, nullable=False),
        sa.Column("country_code", sa.String(2), nullable=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── contacts ──────────────────────────────────────────────────────
    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "contact_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_low", sa.Integer, nullable=False),
        sa.Column("user_high", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum(*CONTACT_STATUSES, name="contactstatus", native_enum=False),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_low", "user_high", name="uq_contacts_pair"),
        sa.CheckConstraint("user_low < user_high", name="ck_contacts_pair_order"),
    )
    op.create_index("idx_contacts_user", "contacts", ["user_id"])
    op.create_index("idx_contacts_contact", "contacts", ["contact_id"])
    op.create_index("idx_contacts_status", "contacts", ["status"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "requester_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "accepter_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("from_location", sa.String(255), nullable=False),
        sa.Column("to_location", sa.String(255), nullable=False),
        sa.Column("from_lat", sa.Float, nullable=True),
        sa.Column("from_lon", sa.Float, nullable=True),
        sa.Column("to_lat", sa.Float, nullable=True),
        sa.Column("to_lon", sa.Float, nullable=True),
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*RIDE_STATUSES, name="ridestatus", native_enum=False),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("rider_name", sa.String(120), nullable=False),
        sa.Column("rider_phone", sa.String(20), nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("is_edited", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        # accepter is present exactly in the accepted / completed states
        sa.CheckConstraint(
            "(accepter_id IS NOT NULL) = (status IN ('accepted', 'completed'))",
            name="ck_rides_accepter_matches_status",
        ),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_requester", "rides", ["requester_id"])
    op.create_index("idx_rides_accepter", "rides", ["accepter_id"])
    op.create_index("idx_rides_time", "rides", ["time"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("related_id", sa.Integer, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id", "is_read"])
    op.create_index("idx_notifications_created", "notifications", ["created_at"])

    # ── ride_notes ────────────────────────────────────────────────────
    op.create_table(
        "ride_notes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ride_id",
            sa.Integer,
            sa.ForeignKey("rides.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("note", sa.Text, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_ride_notes_ride", "ride_notes", ["ride_id"])


def downgrade() -> None:
    op.drop_table("ride_notes")
    op.drop_table("notifications")
    op.drop_table("rides")
    op.drop_table("contacts")
    op.drop_table("users")
