# watchvibe/core/security.py
"""
Security module for authentication.
Handles password hashing, access/refresh JWT issuance and validation, and the
one-time (temporary) tokens used for email verification links.
"""
import datetime as dt
import hashlib
import secrets
import uuid
from dataclasses import dataclass

import jwt  # PyJWT
from passlib.context import CryptContext

from watchvibe.config import settings

# Password hashing context
# Argon2 is a modern, secure password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
TEMPORARY_TOKEN_BYTES = 20


class TokenError(Exception):
    """Base class for token validation failures."""


class TokenExpired(TokenError):
    """Token signature is valid but its exp claim is in the past."""


class TokenInvalid(TokenError):
    """Token is malformed, tampered with, or of the wrong type."""


@dataclass(frozen=True)
class TemporaryToken:
    """
    One-time token material.

    plain_token goes to the user (e.g. inside the verification link);
    hashed_token is what gets persisted; expiry bounds its validity.
    """
    plain_token: str
    hashed_token: str
    expiry: dt.datetime


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns False for a missing or unparseable hash instead of raising.
    """
    if not plain or not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def _encode(payload: dict, secret: str, lifetime: dt.timedelta) -> str:
    now = utc_now()
    payload = {
        **payload,
        "jti": uuid.uuid4().hex,  # Two tokens minted in the same second must still differ
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_alg)


def _decode(token: str, secret: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired("Token has expired") from exc
    except jwt.PyJWTError as exc:
        raise TokenInvalid("Token is invalid") from exc
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise TokenInvalid("Token is invalid")
    return payload


def issue_access_token(user) -> str:
    """
    Create a short-lived access token.

    The payload carries the identity fields the API layer needs without a
    database round trip: sub (user id), email, username, fullName.
    """
    return _encode(
        {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "fullName": user.full_name,
            "type": ACCESS_TOKEN_TYPE,
        },
        settings.access_token_secret,
        dt.timedelta(minutes=settings.access_token_expire_minutes),
    )


def issue_refresh_token(user) -> str:
    """Create a longer-lived refresh token carrying only the user id."""
    return _encode(
        {"sub": str(user.id), "type": REFRESH_TOKEN_TYPE},
        settings.refresh_token_secret,
        dt.timedelta(days=settings.refresh_token_expire_days),
    )


def verify_access_token(token: str) -> dict:
    """
    Decode and validate an access token.

    Raises:
        TokenExpired: If the token has expired
        TokenInvalid: If the token is malformed, forged, or not an access token
    """
    return _decode(token, settings.access_token_secret, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str) -> dict:
    """
    Decode and validate a refresh token.

    Raises:
        TokenExpired: If the token has expired
        TokenInvalid: If the token is malformed, forged, or not a refresh token
    """
    return _decode(token, settings.refresh_token_secret, REFRESH_TOKEN_TYPE)


def hash_temporary_token(plain_token: str) -> str:
    return hashlib.sha256(plain_token.encode("utf-8")).hexdigest()


def generate_temporary_token() -> TemporaryToken:
    """
    Generate a one-time token for email verification links.

    The plain token is random and unguessable and is only ever sent to the
    user; the server keeps its SHA-256 digest and recomputes it on redemption.
    """
    plain = secrets.token_hex(TEMPORARY_TOKEN_BYTES)
    return TemporaryToken(
        plain_token=plain,
        hashed_token=hash_temporary_token(plain),
        expiry=utc_now() + dt.timedelta(minutes=settings.temporary_token_expire_minutes),
    )
