"""Reset database to empty state.

Clears all data from:
- bids
- phone_verifications
- auction_items
- auctions
- users

Also clears Redis data (codes, cooldowns, user cache).

Usage:
    python -m scripts.reset_db
"""

import asyncio

from redis.exceptions import RedisError
from sqlalchemy import text

from auctionhouse.core.database import async_session_maker, engine
from auctionhouse.core.redis import close_redis, get_redis

# Children before parents because of foreign keys
TABLES = ["bids", "phone_verifications", "auction_items", "auctions", "users"]


async def reset_database():
    """Clear all rows from the application tables."""
    print("Resetting database to empty state...")

    async with async_session_maker() as session:
        for table in TABLES:
            result = await session.execute(text(f"DELETE FROM {table}"))
            print(f"  Deleted {result.rowcount} rows from {table}")

        await session.commit()
        print("Database cleared.")


async def reset_redis():
    """Flush the configured Redis database."""
    print("Resetting Redis...")

    try:
        redis = await get_redis()
        await redis.flushdb()
        print("  Redis flushed.")
    except RedisError as e:
        print(f"  Warning: Could not clear Redis: {e}")
    finally:
        await close_redis()


async def main():
    await reset_database()
    await reset_redis()
    print("Reset complete. Re-seed with: python -m scripts.seed_data")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
