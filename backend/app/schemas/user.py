"""User and authentication schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from app.core.roles import DEFAULT_ROLE

_EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class UserLogin(BaseModel):
    """User login schema"""
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def email_lowercase(cls, v):
        return _normalize_email(v)


class UserCreate(BaseModel):
    """User creation schema"""
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = Field(None, max_length=100)
    role: str = DEFAULT_ROLE

    @field_validator('email')
    @classmethod
    def email_lowercase(cls, v):
        """Store emails case-insensitively"""
        return _normalize_email(v)


class UserResponse(BaseModel):
    """User response schema"""
    id: int
    email: str
    full_name: Optional[str] = None
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Access token response; the refresh token travels in a cookie"""
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)

    @field_validator('email')
    @classmethod
    def email_lowercase(cls, v):
        return _normalize_email(v)


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8)
