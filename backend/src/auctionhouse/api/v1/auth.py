"""Authentication API endpoints: email accounts and phone verification."""

from fastapi import APIRouter, HTTPException, status

from auctionhouse.api.deps import (
    CurrentUser,
    DbSession,
    OptionalIdentity,
    PhoneVerificationDep,
    forget_identity,
)
from auctionhouse.core.config import settings
from auctionhouse.core.security import create_access_token
from auctionhouse.models.user import User
from auctionhouse.schemas.user import (
    PhoneSendRequest,
    PhoneSendResponse,
    PhoneVerificationResponse,
    PhoneVerifyRequest,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from auctionhouse.services.phone_verification_service import (
    InvalidPhoneNumber,
    TooManyAttempts,
    VerificationCooldown,
    VerificationError,
    normalize_phone_number,
)
from auctionhouse.services.user_service import UserService

router = APIRouter()


def _token_for(user: User) -> TokenResponse:
    access_token = create_access_token(data={"sub": str(user.user_id)})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _verification_http_error(e: VerificationError) -> HTTPException:
    if isinstance(e, (VerificationCooldown, TooManyAttempts)):
        status_code = status.HTTP_429_TOO_MANY_REQUESTS
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"error": e.code, "message": str(e)},
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: DbSession):
    """Register a new email/password account.

    Raises:
        400: Email already registered
    """
    user_service = UserService(db)

    try:
        user = await user_service.create_user(user_data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return user


@router.post("/login", response_model=TokenResponse)
async def login(user_data: UserLogin, db: DbSession):
    """Sign in with email and password and get an access token.

    Raises:
        401: Invalid credentials
    """
    user_service = UserService(db)
    user = await user_service.authenticate(user_data.email, user_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    """Get current user information."""
    return current_user


@router.post("/phone/send", response_model=PhoneSendResponse)
async def send_phone_verification(
    request: PhoneSendRequest,
    verification_service: PhoneVerificationDep,
):
    """Send a one-time code by SMS.

    Which account the number ends up on is decided when the code is
    verified, not here.

    Raises:
        400: Number is not valid E.164
        429: A code was sent too recently
    """
    try:
        phone_number = await verification_service.send_verification(request.phone_number)
    except VerificationError as e:
        raise _verification_http_error(e)

    return PhoneSendResponse(phone_number=phone_number, expires_in=settings.OTP_TTL_SECONDS)


@router.post("/phone/verify", response_model=TokenResponse)
async def verify_phone(
    request: PhoneVerifyRequest,
    identity: OptionalIdentity,
    verification_service: PhoneVerificationDep,
):
    """Verify a one-time code and get an access token for the phone's account.

    Raises:
        400: Wrong, expired or never-sent code, or number linked elsewhere
        429: Too many wrong codes
    """
    user_id = identity.user_id if identity else None
    try:
        user = await verification_service.verify_code(
            request.phone_number, request.code, user_id=user_id
        )
    except VerificationError as e:
        raise _verification_http_error(e)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "phone_binding_failed", "message": str(e)},
        )

    forget_identity(user.user_id)
    return _token_for(user)


@router.get("/phone/{phone_number}", response_model=PhoneVerificationResponse)
async def get_phone_verification(
    phone_number: str,
    verification_service: PhoneVerificationDep,
):
    """Get the verification state of a phone number.

    Raises:
        400: Number is not valid E.164
        404: No code was ever requested for the number
    """
    try:
        normalized = normalize_phone_number(phone_number)
    except InvalidPhoneNumber as e:
        raise _verification_http_error(e)

    verification = await verification_service.get_verification(normalized)
    if verification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No verification found for this phone number",
        )
    return verification
