"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample users
  - a small contact graph (accepted and pending edges)
  - 6 sample rides (mix of pending, accepted, completed, cancelled)
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from ridecircle.domain.entities import Contact
from ridecircle.domain.enums import ContactStatus, RideStatus
from ridecircle.infrastructure.database import async_session_factory, engine
from ridecircle.infrastructure.models import ContactModel, RideModel, UserModel


USERS = [
    {"name": "Noa Levi", "phone": "+972501000001", "email": "noa@example.com"},
    {"name": "Omer Cohen", "phone": "+972501000002", "email": "omer@example.com"},
    {"name": "Maya Mizrahi", "phone": "+972501000003", "email": "maya@example.com"},
    {"name": "Itai Peretz", "phone": "+972501000004", "email": "itai@example.com"},
    {"name": "Shira Biton", "phone": "+972501000005", "email": "shira@example.com"},
    {"name": "Yonatan Dahan", "phone": "+972501000006", "email": "yonatan@example.com"},
    {"name": "Tamar Friedman", "phone": "+972501000007", "email": "tamar@example.com"},
    {"name": "Ariel Katz", "phone": "+972501000008", "email": "ariel@example.com"},
]

# (initiator index, target index, status)
CONTACTS = [
    (0, 1, ContactStatus.ACCEPTED),
    (0, 2, ContactStatus.ACCEPTED),
    (1, 3, ContactStatus.ACCEPTED),
    (2, 3, ContactStatus.ACCEPTED),
    (2, 4, ContactStatus.ACCEPTED),
    (5, 0, ContactStatus.PENDING),
    (6, 7, ContactStatus.ACCEPTED),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        users = []
        for u in USERS:
            m = UserModel(country_code="IL", is_verified=True, **u)
            session.add(m)
            users.append(m)
        await session.flush()
        print(f"  Created {len(users)} users")

        # ── Contacts ──────────────────────────────────────────────────
        for a, b, status in CONTACTS:
            low, high = Contact.pair_key(users[a].id, users[b].id)
            session.add(
                ContactModel(
                    user_id=users[a].id,
                    contact_id=users[b].id,
                    user_low=low,
                    user_high=high,
                    status=status,
                )
            )
        await session.flush()
        print(f"  Created {len(CONTACTS)} contacts")

        # ── Rides ─────────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        rides_data = [
            # Pending: visible to Noa's and Maya's contacts
            {"requester": 1, "accepter": None, "status": RideStatus.PENDING,
             "from": "Tel Aviv Savidor", "to": "Ben Gurion Airport", "hours": 5},
            {"requester": 2, "accepter": None, "status": RideStatus.PENDING,
             "from": "Haifa Bat Galim", "to": "Technion", "hours": 26},
            # Accepted by a contact
            {"requester": 0, "accepter": 2, "status": RideStatus.ACCEPTED,
             "from": "Ramat Gan", "to": "Sheba Hospital", "hours": 3},
            # History feeding the suggestion engine
            {"requester": 3, "accepter": 1, "status": RideStatus.COMPLETED,
             "from": "Herzliya", "to": "Kfar Saba", "hours": -48},
            {"requester": 4, "accepter": 2, "status": RideStatus.COMPLETED,
             "from": "Rehovot", "to": "Ness Ziona", "hours": -72},
            {"requester": 1, "accepter": None, "status": RideStatus.CANCELLED,
             "from": "Jaffa", "to": "Holon", "hours": -24},
        ]

        for r in rides_data:
            requester = users[r["requester"]]
            session.add(
                RideModel(
                    requester_id=requester.id,
                    accepter_id=users[r["accepter"]].id if r["accepter"] is not None else None,
                    from_location=r["from"],
                    to_location=r["to"],
                    time=now + timedelta(hours=r["hours"]),
                    status=r["status"],
                    rider_name=requester.name,
                    rider_phone=requester.phone,
                )
            )
        await session.flush()
        print(f"  Created {len(rides_data)} rides")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
