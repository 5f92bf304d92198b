"""Phone verification: one-time codes sent by SMS and bound to user accounts."""

import hashlib
import logging
import re
import secrets
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from auctionhouse.core.config import settings
from auctionhouse.middleware.metrics import record_otp_sent
from auctionhouse.models.phone_verification import PhoneVerification
from auctionhouse.models.user import User
from auctionhouse.services.redis_service import RedisService
from auctionhouse.services.sms import SmsSender
from auctionhouse.services.user_service import UserService

logger = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


class VerificationError(Exception):
    """Base class for phone verification errors."""

    code = "verification_error"


class InvalidPhoneNumber(VerificationError):
    code = "invalid_phone_number"


class VerificationCooldown(VerificationError):
    code = "verification_cooldown"


class VerificationExpired(VerificationError):
    code = "verification_expired"


class InvalidVerificationCode(VerificationError):
    code = "invalid_code"

    def __init__(self, attempts_left: int):
        super().__init__(f"Invalid verification code, {attempts_left} attempts left")
        self.attempts_left = attempts_left


class TooManyAttempts(VerificationError):
    code = "too_many_attempts"


def normalize_phone_number(raw: str) -> str:
    """Normalize user input to E.164.

    A leading ``+`` is kept and every other non-digit dropped. Bare 10-digit
    numbers are taken as North American and get ``+1``; other numbers without
    a ``+`` just get one prepended.

    Raises:
        InvalidPhoneNumber: If the result is not valid E.164
    """
    value = raw.strip()
    has_plus = value.startswith("+")
    digits = re.sub(r"\D", "", value)

    if has_plus:
        formatted = f"+{digits}"
    elif len(digits) == 10:
        formatted = f"+1{digits}"
    else:
        formatted = f"+{digits}"

    if not E164_PATTERN.match(formatted):
        raise InvalidPhoneNumber(
            "Phone number must be in E.164 format: + followed by country code and number"
        )
    return formatted


def hash_code(phone_number: str, code: str) -> str:
    """Hash a code together with its phone number so hashes are not reusable."""
    return hashlib.sha256(f"{phone_number}:{code}".encode()).hexdigest()


def generate_code(length: int) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


class PhoneVerificationService:
    """Issues and checks one-time codes and records verification state."""

    def __init__(
        self,
        db: AsyncSession,
        redis_service: RedisService,
        sms_sender: SmsSender,
    ):
        self.db = db
        self.redis_service = redis_service
        self.sms_sender = sms_sender

    async def send_verification(self, raw_phone_number: str) -> str:
        """Send a fresh code to a phone number.

        Sending never binds the number to an account; that only happens in
        verify_code, for whoever proves they received the code.

        Args:
            raw_phone_number: Number as typed by the user

        Returns:
            The normalized E.164 number

        Raises:
            InvalidPhoneNumber: Number cannot be normalized
            VerificationCooldown: A code was sent too recently
        """
        phone_number = normalize_phone_number(raw_phone_number)

        if not await self.redis_service.acquire_otp_cooldown(
            phone_number, settings.OTP_RESEND_SECONDS
        ):
            raise VerificationCooldown(
                f"Please wait {settings.OTP_RESEND_SECONDS} seconds before requesting a new code"
            )

        code = generate_code(settings.OTP_LENGTH)
        try:
            await self.redis_service.store_otp(
                phone_number, hash_code(phone_number, code), settings.OTP_TTL_SECONDS
            )
            await self._upsert_pending(phone_number)
            await self.sms_sender.send_verification_code(phone_number, code)
        except Exception:
            await self.redis_service.delete_otp(phone_number)
            await self.redis_service.release_otp_cooldown(phone_number)
            raise

        record_otp_sent()
        return phone_number

    async def verify_code(
        self, raw_phone_number: str, code: str, user_id: UUID | None = None
    ) -> User:
        """Check a code and bind the phone number to an account.

        The number is bound to ``user_id``, the caller verifying the code. With
        no caller it goes to the account already owning the number, or to a new
        phone-only account. The row's user_id is only ever written here.

        Returns:
            The account owning the number (created if it is new)

        Raises:
            InvalidPhoneNumber: Number cannot be normalized
            VerificationExpired: No active code for the number
            InvalidVerificationCode: Wrong code, attempts remain
            TooManyAttempts: Wrong code and the attempt limit was reached
        """
        phone_number = normalize_phone_number(raw_phone_number)
        status, attempts = await self.redis_service.check_otp(
            phone_number, hash_code(phone_number, code.strip()), settings.OTP_MAX_ATTEMPTS
        )

        if status == 0:
            raise VerificationExpired("Verification code expired or was never sent")

        verification = await self.get_verification(phone_number)

        if status < 0:
            if verification is not None:
                verification.attempt_count = attempts
                await self.db.commit()
            logger.info(f"Wrong verification code for {phone_number} (attempt {attempts})")
            if status == -2:
                raise TooManyAttempts("Too many wrong codes, request a new one")
            raise InvalidVerificationCode(settings.OTP_MAX_ATTEMPTS - attempts)

        user_service = UserService(self.db)
        try:
            user = await user_service.bind_phone(phone_number, user_id)
            if verification is None:
                verification = PhoneVerification(phone_number=phone_number)
                self.db.add(verification)
            verification.user_id = user.user_id
            verification.verified = True
            verification.attempt_count = attempts
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(user)
        try:
            await self.redis_service.invalidate_user_cache(str(user.user_id))
        except RedisError as e:
            logger.warning(f"Failed to invalidate cached user {user.user_id}: {e}")
        logger.info(f"Phone {phone_number} verified for user {user.user_id}")
        return user

    async def get_verification(self, phone_number: str) -> PhoneVerification | None:
        """Get the verification row for an E.164 number, None if never requested."""
        result = await self.db.execute(
            select(PhoneVerification).where(PhoneVerification.phone_number == phone_number)
        )
        return result.scalar_one_or_none()

    async def _upsert_pending(self, phone_number: str) -> None:
        """Reset the row for a number to unverified with no attempts.

        user_id is left alone: it names the last verified owner.
        """
        stmt = pg_insert(PhoneVerification).values(
            phone_number=phone_number,
            verified=False,
            attempt_count=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["phone_number"],
            set_={
                "verified": False,
                "attempt_count": 0,
                "updated_at": func.now(),
            },
        )
        await self.db.execute(stmt)
        await self.db.commit()
