"""User service for registration, authentication and phone-based accounts."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auctionhouse.core.security import get_password_hash, verify_password
from auctionhouse.models.user import User
from auctionhouse.schemas.user import UserRegister


class UserService:
    """Service class for user operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email."""
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone_number: str) -> User | None:
        """Get user by E.164 phone number."""
        result = await self.db.execute(select(User).where(User.phone_number == phone_number))
        return result.scalar_one_or_none()

    async def create_user(self, user_data: UserRegister) -> User:
        """Create a new email/password user.

        Raises:
            ValueError: If email already exists
        """
        existing = await self.get_by_email(user_data.email)
        if existing:
            raise ValueError("Email already registered")

        user = User(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            full_name=user_data.full_name,
            status="active",
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except IntegrityError:
            await self.db.rollback()
            raise ValueError("Email already registered")

    async def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate user by email and password.

        Returns:
            User if authentication successful, None otherwise
        """
        user = await self.get_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        if user.status != "active":
            return None
        return user

    async def bind_phone(self, phone_number: str, user_id: UUID | None = None) -> User:
        """Return the account owning a verified phone number.

        If ``user_id`` is given the number is attached to that account.
        Otherwise the existing account for the number is returned, or a new
        phone-only account is created. Does not commit.

        Raises:
            ValueError: If user_id does not exist or the number belongs to
                another account
        """
        owner = await self.get_by_phone(phone_number)

        if user_id is not None:
            user = await self.get_by_id(user_id)
            if user is None:
                raise ValueError("User not found")
            if owner is not None and owner.user_id != user.user_id:
                raise ValueError("Phone number is linked to another account")
            user.phone_number = phone_number
            return user

        if owner is not None:
            return owner

        user = User(phone_number=phone_number, status="active")
        self.db.add(user)
        await self.db.flush()
        return user
