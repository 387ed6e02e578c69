# app/schemas/user.py
from pydantic import BaseModel, EmailStr, Field, AliasChoices, field_validator
from typing import Optional
from datetime import datetime
import re

from app.core.config import get_settings
from app.models.users import UserRole

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{6,14}$")


def normalize_phone(value: str) -> str:
    phone = re.sub(r"[\s\-()]", "", value)
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Invalid phone number")
    return phone


class UserBase(BaseModel):
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2)
    phone: str
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_domain_allowed(cls, v: str) -> str:
        allowed = get_settings().ALLOWED_EMAIL_DOMAINS
        domain = v.rsplit("@", 1)[-1].lower()
        if allowed and domain not in [d.lower() for d in allowed]:
            raise ValueError(f"Only {', '.join(allowed)} addresses are allowed")
        return v

    @field_validator("full_name")
    @classmethod
    def full_name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters long")
        return v

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return normalize_phone(v)


class UserLogin(UserBase):
    password: str = Field(..., min_length=1)


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class EmailRequest(UserBase):
    pass


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(
        ...,
        min_length=6,
        validation_alias=AliasChoices("new_password", "newPassword"),
    )


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return normalize_phone(v)


class AdminUserUpdate(ProfileUpdate):
    role: Optional[UserRole] = None
    is_verified: Optional[bool] = None


class UserResponse(UserBase):
    sid: str
    full_name: str
    phone: str
    address: Optional[str] = None
    role: UserRole
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str
