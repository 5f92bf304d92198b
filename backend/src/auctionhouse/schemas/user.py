"""User and phone verification schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserRegister(BaseModel):
    """Schema for email sign-up request."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=100)


class UserLogin(BaseModel):
    """Schema for email sign-in request."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Schema for user response."""

    user_id: UUID
    email: str | None
    phone_number: str | None
    full_name: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Schema for login token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600


class PhoneSendRequest(BaseModel):
    """Schema for requesting a verification code."""

    phone_number: str = Field(..., min_length=3, max_length=32)


class PhoneSendResponse(BaseModel):
    """Schema for a dispatched verification code."""

    phone_number: str
    expires_in: int


class PhoneVerifyRequest(BaseModel):
    """Schema for submitting a verification code."""

    phone_number: str = Field(..., min_length=3, max_length=32)
    code: str = Field(..., min_length=4, max_length=10)


class PhoneVerificationResponse(BaseModel):
    """Schema for phone verification state."""

    phone_number: str
    user_id: UUID | None
    verified: bool
    updated_at: datetime

    model_config = {"from_attributes": True}
