"""API dependencies for identity, database access and services."""

import logging
from typing import Annotated
from uuid import UUID

from cachetools import TTLCache
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from auctionhouse.core.config import settings
from auctionhouse.core.database import get_db
from auctionhouse.core.redis import get_redis
from auctionhouse.core.security import Identity, decode_access_token
from auctionhouse.models.user import User
from auctionhouse.services.bid_service import BidLedgerService
from auctionhouse.services.bid_store import SqlBidStore
from auctionhouse.services.phone_verification_service import PhoneVerificationService
from auctionhouse.services.redis_service import RedisService
from auctionhouse.services.sms import LoggingSmsSender
from auctionhouse.services.user_service import UserService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]

# L1 cache in front of the Redis user cache: user_id -> (status, phone_number)
IDENTITY_LOCAL_TTL = 5
_identity_local_cache: TTLCache = TTLCache(maxsize=10000, ttl=IDENTITY_LOCAL_TTL)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_redis_service() -> RedisService:
    """Get RedisService instance with shared Redis connection pool."""
    redis = await get_redis()
    return RedisService(redis)


RedisServiceDep = Annotated[RedisService, Depends(get_redis_service)]


def _user_id_from_token(token: str) -> UUID:
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Invalid authentication token")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    try:
        return UUID(user_id)
    except ValueError:
        raise _unauthorized("Invalid user ID in token")


async def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DbSession,
    redis_service: RedisServiceDep,
) -> Identity | None:
    """Resolve the caller's identity from the bearer token.

    Returns None when no token is sent. A token that is present but invalid,
    or that belongs to an unknown or disabled account, is rejected.
    User fields are cached in-process for IDENTITY_LOCAL_TTL seconds and in
    Redis for USER_CACHE_TTL seconds.
    """
    if credentials is None:
        return None

    user_id = _user_id_from_token(credentials.credentials)
    key = str(user_id)

    local = _identity_local_cache.get(key)
    if local is not None:
        user_status, phone_number = local
        return _identity_for(user_id, user_status, phone_number)

    cached = None
    try:
        cached = await redis_service.get_cached_user(key)
    except RedisError as e:
        logger.warning(f"User cache read failed, falling back to database: {e}")

    if cached:
        user_status = cached.get("status")
        phone_number = cached.get("phone_number")
    else:
        user = await UserService(db).get_by_id(user_id)
        if user is None:
            raise _unauthorized("User not found")
        user_status = user.status
        phone_number = user.phone_number
        try:
            await redis_service.cache_user(
                str(user_id),
                {"status": user.status, "phone_number": user.phone_number},
                ttl=settings.USER_CACHE_TTL,
            )
        except RedisError as e:
            logger.warning(f"User cache write failed: {e}")

    _identity_local_cache[key] = (user_status, phone_number)
    return _identity_for(user_id, user_status, phone_number)


def _identity_for(user_id: UUID, user_status: str | None, phone_number: str | None) -> Identity:
    if user_status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )

    return Identity(user_id=user_id, phone_number=phone_number)


def forget_identity(user_id: UUID) -> None:
    """Drop a user from the in-process identity cache after their fields change."""
    _identity_local_cache.pop(str(user_id), None)


async def get_current_identity(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
) -> Identity:
    """Like get_optional_identity but a missing token is a 401."""
    if identity is None:
        raise _unauthorized("Not authenticated")
    return identity


async def get_current_user(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: DbSession,
) -> User:
    """Load the full user row for the authenticated caller."""
    user = await UserService(db).get_by_id(identity.user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_bid_ledger(db: DbSession) -> BidLedgerService:
    """Get a BidLedgerService bound to this request's session."""
    return BidLedgerService(
        SqlBidStore(db),
        max_attempts=settings.BID_MAX_ATTEMPTS,
        enforce_auction_window=settings.ENFORCE_AUCTION_WINDOW,
    )


async def get_phone_verification_service(
    db: DbSession,
    redis_service: RedisServiceDep,
) -> PhoneVerificationService:
    """Get a PhoneVerificationService with the configured SMS sender."""
    return PhoneVerificationService(db, redis_service, LoggingSmsSender())


BidLedgerDep = Annotated[BidLedgerService, Depends(get_bid_ledger)]
PhoneVerificationDep = Annotated[
    PhoneVerificationService, Depends(get_phone_verification_service)
]
