# watchvibe/models/user.py
"""
Database model for users.
Represents a user account: identity, hashed credential, role, the single active
refresh token, the pending OTP and the email verification state.
"""
import asyncio
import uuid
from enum import Enum
from typing import Iterable, Optional

from tortoise import fields, models

from watchvibe.core.security import hash_password


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class LoginType(str, Enum):
    GOOGLE = "GOOGLE"
    GITHUB = "GITHUB"
    EMAIL_PASSWORD = "EMAIL_PASSWORD"


class User(models.Model):
    """
    User database model.

    Security:
    - Password is stored as a hash only. Assign a new raw password with
      set_password(); the hash is computed on the next save() and only then,
      so re-saving an unchanged user never re-hashes.
    - Username and email are unique and stored trimmed and lowercased.
    - refresh_token holds the one active refresh token (no per-device list).
    - A pending otp is unique across users; the code alone selects the account.
    - email_verification_token / email_verification_expiry are set and cleared as a pair.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    username = fields.CharField(max_length=256, unique=True, index=True)  # Login name, lowercased
    email = fields.CharField(max_length=256, unique=True, index=True)  # Login email, lowercased
    full_name = fields.CharField(max_length=256, index=True)
    role = fields.CharEnumField(UserRole, max_length=16, default=UserRole.USER)
    avatar = fields.CharField(max_length=1024)  # Media reference (URL)
    cover_image = fields.CharField(max_length=1024, null=True)

    password_hash = fields.CharField(max_length=255)  # Argon2 hash, never plain text
    login_type = fields.CharEnumField(LoginType, max_length=32, default=LoginType.EMAIL_PASSWORD)

    refresh_token = fields.TextField(null=True)
    otp = fields.CharField(max_length=8, null=True, unique=True)  # A pending code identifies one user
    otp_expiry = fields.DatetimeField(null=True)

    is_email_verified = fields.BooleanField(default=False)
    email_verification_token = fields.CharField(max_length=64, null=True, index=True)  # sha256 hex
    email_verification_expiry = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name

    def set_password(self, raw: str) -> None:
        """Stage a new raw password; it is hashed on the next save()."""
        self._raw_password = raw

    def clear_otp(self) -> None:
        self.otp = None
        self.otp_expiry = None

    def clear_email_verification(self) -> None:
        self.email_verification_token = None
        self.email_verification_expiry = None

    async def save(
        self,
        using_db=None,
        update_fields: Optional[Iterable[str]] = None,
        force_create: bool = False,
        force_update: bool = False,
    ) -> None:
        self.username = (self.username or "").strip().lower()
        self.email = (self.email or "").strip().lower()
        self.full_name = (self.full_name or "").strip()

        raw = getattr(self, "_raw_password", None)
        if raw is not None:
            # CPU-bound hashing runs off the event loop
            self.password_hash = await asyncio.to_thread(hash_password, raw)
            self._raw_password = None
            if update_fields is not None:
                update_fields = {*update_fields, "password_hash"}
        if update_fields is not None:
            update_fields = list({*update_fields, "updated_at"})

        await super().save(
            using_db=using_db,
            update_fields=update_fields,
            force_create=force_create,
            force_update=force_update,
        )
