"""Seed data script for development.

Creates:
- 1 organizer + N bidders (email/password accounts)
- 1 running auction with a handful of items, no bids yet

Environment Variables:
    AUCTION_DURATION_MINUTES: Auction duration in minutes (default: 60)
    SEED_BIDDERS: Number of bidder accounts (default: 20)

Usage:
    python -m scripts.seed_data
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auctionhouse.core.database import async_session_maker, engine
from auctionhouse.core.security import get_password_hash
from auctionhouse.models import Auction, AuctionItem, User

AUCTION_DURATION_MINUTES = int(os.getenv("AUCTION_DURATION_MINUTES", "60"))
SEED_BIDDERS = int(os.getenv("SEED_BIDDERS", "20"))

DEMO_ITEMS = [
    ("Signed first edition", "Hardcover, signed by the author", Decimal("100.00")),
    ("Weekend at the lake house", "Two nights for four guests", Decimal("450.00")),
    ("Hand-thrown ceramic set", "Six bowls and a serving plate", Decimal("80.00")),
    ("Cooking class for two", "Three-hour class with dinner", Decimal("120.00")),
]


async def seed_users(session: AsyncSession) -> list[User]:
    """Create the organizer and bidder accounts.

    - Organizer: organizer@example.com / organizer123
    - Bidders: bidder001@example.com ... / password123
    """
    print("Seeding users...")

    result = await session.execute(select(User).limit(1))
    if result.scalar_one_or_none():
        print("  Users already exist, skipping...")
        result = await session.execute(select(User))
        return list(result.scalars().all())

    users = [
        User(
            email="organizer@example.com",
            password_hash=get_password_hash("organizer123"),
            full_name="Auction Organizer",
            status="active",
        )
    ]
    print("  Created organizer: organizer@example.com / organizer123")

    password_hash = get_password_hash("password123")
    for i in range(1, SEED_BIDDERS + 1):
        users.append(
            User(
                email=f"bidder{i:03d}@example.com",
                password_hash=password_hash,
                full_name=f"Bidder {i:03d}",
                status="active",
            )
        )

    session.add_all(users)
    await session.commit()
    for user in users:
        await session.refresh(user)

    print(f"  Created {len(users)} users")
    return users


async def seed_auction(session: AsyncSession, organizer: User) -> Auction:
    """Create one auction running from now for AUCTION_DURATION_MINUTES."""
    print("Seeding auction...")

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    auction = Auction(
        title="Spring Charity Auction",
        description="Proceeds go to the community library",
        start_time=now,
        end_time=now + timedelta(minutes=AUCTION_DURATION_MINUTES),
        created_by=organizer.user_id,
    )
    session.add(auction)
    await session.flush()

    for title, description, starting_price in DEMO_ITEMS:
        session.add(
            AuctionItem(
                auction_id=auction.auction_id,
                title=title,
                description=description,
                starting_price=starting_price,
            )
        )

    await session.commit()
    await session.refresh(auction)

    print(f"  Created auction: {auction.auction_id}")
    print(f"    Items: {len(DEMO_ITEMS)}")
    print(f"    Start: {auction.start_time}")
    print(f"    End: {auction.end_time}")
    return auction


async def main():
    print("=" * 60)
    print("Auction House - Seed Data Script")
    print("=" * 60)

    async with async_session_maker() as session:
        users = await seed_users(session)
        auction = await seed_auction(session, users[0])

    print("=" * 60)
    print("Seed data complete!")
    print(f"  Users: {len(users)}")
    print(f"  Auction: {auction.auction_id}")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
