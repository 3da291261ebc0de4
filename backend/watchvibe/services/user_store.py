# watchvibe/services/user_store.py
"""
Credential store backed by the Tortoise User model.

Thin id/filter-keyed access used by AuthService, so the service never builds
ORM queries itself and tests can swap the store if needed.
"""
import uuid
from typing import Any, Optional

from tortoise.expressions import Q

from watchvibe.models.user import User


def _normalize(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else value


def _parse_id(user_id: Any) -> Optional[uuid.UUID]:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except (TypeError, ValueError):
        return None


class UserStore:
    async def find_by_id(self, user_id: Any) -> Optional[User]:
        pk = _parse_id(user_id)
        if pk is None:
            return None
        return await User.get_or_none(id=pk)

    async def find_by_username_or_email(
        self, username: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[User]:
        """Return the first user whose username OR email matches (case-insensitive)."""
        clauses = []
        if username:
            clauses.append(Q(username=_normalize(username)))
        if email:
            clauses.append(Q(email=_normalize(email)))
        if not clauses:
            return None
        return await User.filter(Q(*clauses, join_type="OR")).first()

    async def find_by_email(self, email: str) -> Optional[User]:
        return await User.get_or_none(email=_normalize(email))

    async def find_by_otp(self, otp: str) -> Optional[User]:
        return await User.filter(otp=otp).first()

    async def otp_taken(self, otp: str, exclude_id: Any = None) -> bool:
        """True if a user other than exclude_id holds this pending OTP."""
        query = User.filter(otp=otp)
        if exclude_id is not None:
            query = query.exclude(id=exclude_id)
        return await query.exists()

    async def find_by_verification_token(self, hashed_token: str) -> Optional[User]:
        return await User.filter(email_verification_token=hashed_token).first()

    async def create(self, password: str, **fields) -> User:
        """Insert a new user; the raw password is hashed by User.save()."""
        user = User(**fields)
        user.set_password(password)
        await user.save()
        return user

    async def save(self, user: User, update_fields: Optional[list[str]] = None) -> User:
        """
        Persist a user. With update_fields only those columns are written
        (no full-record rewrite); a staged password is always included.
        """
        await user.save(update_fields=update_fields)
        return user

    async def find_by_id_and_update(self, user_id: Any, **patch) -> Optional[User]:
        """Apply patch to the user and return the updated record, or None if absent."""
        user = await self.find_by_id(user_id)
        if user is None:
            return None
        for field_name, value in patch.items():
            setattr(user, field_name, value)
        await user.save(update_fields=list(patch))
        return user
