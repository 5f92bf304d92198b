"""Redis service for one-time codes, send cooldowns and the user cache."""

from typing import Any

from redis.asyncio import Redis


class RedisService:
    """Service class for Redis operations.

    Key patterns:
        otp:{phone}            hash {code_hash, attempts}, expires with the code
        otp_cooldown:{phone}   marker blocking resends until it expires
        user:{user_id}         hash of cached user fields
    """

    # Lua script for atomic code check with attempt counting.
    # Returns {status, attempts}: 1 match (code consumed), 0 no active code,
    # -1 wrong code, -2 wrong code and attempt limit reached (code discarded)
    CHECK_OTP_SCRIPT = """
    local key = KEYS[1]
    local code_hash = redis.call("HGET", key, "code_hash")
    if not code_hash then
        return {0, 0}
    end
    if code_hash == ARGV[1] then
        local attempts = tonumber(redis.call("HGET", key, "attempts") or "0")
        redis.call("DEL", key)
        return {1, attempts}
    end
    local attempts = redis.call("HINCRBY", key, "attempts", 1)
    if attempts >= tonumber(ARGV[2]) then
        redis.call("DEL", key)
        return {-2, attempts}
    end
    return {-1, attempts}
    """

    USER_CACHE_TTL = 60

    def __init__(self, redis: Redis):
        """Initialize Redis service with a Redis client.

        Args:
            redis: Async Redis client instance
        """
        self.redis = redis
        self._check_otp_script = None

    async def _get_check_otp_script(self):
        """Get or register the code check Lua script."""
        if self._check_otp_script is None:
            self._check_otp_script = self.redis.register_script(self.CHECK_OTP_SCRIPT)
        return self._check_otp_script

    # ==================== One-Time Code Operations ====================

    async def store_otp(self, phone_number: str, code_hash: str, ttl: int) -> None:
        """Store a hashed code for a phone number, replacing any previous one.

        Args:
            phone_number: E.164 phone number
            code_hash: SHA-256 hex digest of the code
            ttl: Seconds until the code expires
        """
        key = f"otp:{phone_number}"
        pipe = self.redis.pipeline()
        pipe.delete(key)
        pipe.hset(key, mapping={"code_hash": code_hash, "attempts": "0"})
        pipe.expire(key, ttl)
        await pipe.execute()

    async def check_otp(
        self, phone_number: str, code_hash: str, max_attempts: int
    ) -> tuple[int, int]:
        """Check a submitted code atomically.

        Args:
            phone_number: E.164 phone number
            code_hash: SHA-256 hex digest of the submitted code
            max_attempts: Wrong attempts allowed before the code is discarded

        Returns:
            Tuple of (status, attempts), see CHECK_OTP_SCRIPT
        """
        key = f"otp:{phone_number}"
        script = await self._get_check_otp_script()
        status, attempts = await script(keys=[key], args=[code_hash, max_attempts])
        return int(status), int(attempts)

    async def delete_otp(self, phone_number: str) -> bool:
        """Discard any active code for a phone number."""
        result = await self.redis.delete(f"otp:{phone_number}")
        return result > 0

    async def acquire_otp_cooldown(self, phone_number: str, ttl: int) -> bool:
        """Start the resend cooldown for a phone number.

        Uses SET NX EX so only one send per window succeeds.

        Returns:
            True if no cooldown was active (a code may be sent)
        """
        key = f"otp_cooldown:{phone_number}"
        acquired = await self.redis.set(key, "1", nx=True, ex=ttl)
        return acquired is not None and acquired is not False

    async def release_otp_cooldown(self, phone_number: str) -> None:
        """Clear the cooldown, used when dispatching the code failed."""
        await self.redis.delete(f"otp_cooldown:{phone_number}")

    # ==================== User Cache Operations ====================

    async def cache_user(
        self, user_id: str, user_data: dict[str, Any], ttl: int | None = None
    ) -> None:
        """Cache user data in a Redis hash.

        None values are skipped since Redis hashes cannot hold them.

        Args:
            user_id: User UUID string
            user_data: User fields
            ttl: Optional TTL in seconds (defaults to USER_CACHE_TTL)
        """
        key = f"user:{user_id}"
        cache_ttl = ttl if ttl is not None else self.USER_CACHE_TTL
        string_data = {k: str(v) for k, v in user_data.items() if v is not None}
        pipe = self.redis.pipeline()
        pipe.hset(key, mapping=string_data)
        pipe.expire(key, cache_ttl)
        await pipe.execute()

    async def get_cached_user(self, user_id: str) -> dict[str, str] | None:
        """Get cached user data, or None if not cached."""
        data = await self.redis.hgetall(f"user:{user_id}")
        return data if data else None

    async def invalidate_user_cache(self, user_id: str) -> bool:
        """Delete cached user data. Call whenever user fields change."""
        result = await self.redis.delete(f"user:{user_id}")
        return result > 0
