# watchvibe/schemas/user.py
"""
Pydantic schemas for the user/auth endpoints.
Request fields are optional on purpose: blank and missing values are reported
by the service as VALIDATION errors inside the standard envelope.
"""
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from watchvibe.models.user import LoginType, UserRole


class _CamelModel(BaseModel):
    """Accepts and emits camelCase keys (fullName, coverImage, ...)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        coerce_numbers_to_str=True,  # OTPs arrive as numbers from some clients
    )


class UserOut(_CamelModel):
    """
    Public user representation.
    Never includes password hash, refresh token, OTP or verification token/expiry.
    """
    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: Optional[str] = None
    role: UserRole
    login_type: LoginType
    is_email_verified: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserOut":
        return cls(
            id=str(user.id),
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=user.avatar,
            cover_image=user.cover_image,
            role=user.role,
            login_type=user.login_type,
            is_email_verified=user.is_email_verified,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class RegisterIn(_CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    avatar: Optional[str] = None  # Media reference produced by the upload step
    cover_image: Optional[str] = None
    role: Optional[str] = None


class LoginIn(_CamelModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class VerifyOtpIn(_CamelModel):
    otp: Optional[str] = None


class RefreshTokenIn(_CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordIn(_CamelModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class ForgotPasswordIn(_CamelModel):
    email: Optional[str] = None


class ResetPasswordIn(_CamelModel):
    otp: Optional[str] = None
    new_password: Optional[str] = None


class UpdateAccountIn(_CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None


class AssignRoleIn(_CamelModel):
    role: Optional[str] = None
