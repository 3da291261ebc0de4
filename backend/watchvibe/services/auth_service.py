# watchvibe/services/auth_service.py
"""
Authentication service.

Orchestrates registration, email verification, two-phase login (password then
OTP), refresh-token rotation, logout, password change/reset and role
assignment over the credential store, the token codec and the mailer.

Every public operation returns Ok(value) or Err(kind, message). Unexpected
collaborator faults are logged and surface as Err(INTERNAL, ...).
"""
import asyncio
import datetime as dt
import functools
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Optional

from tortoise.exceptions import IntegrityError

from watchvibe.config import settings
from watchvibe.core import security
from watchvibe.core.otp import generate_otp
from watchvibe.core.result import Err, ErrorKind, Ok, Result
from watchvibe.core.validation import email_error, registration_error
from watchvibe.models.user import LoginType, User, UserRole
from watchvibe.schemas.user import UserOut
from watchvibe.services.mail_templates import (
    OTP_PURPOSE_FORGOT_PASSWORD,
    OTP_PURPOSE_LOGIN,
    email_verification_content,
    otp_content,
)
from watchvibe.services.mailer import Mailer
from watchvibe.services.user_store import UserStore

logger = logging.getLogger(__name__)

OTP_ALLOCATION_ATTEMPTS = 20
CONFLICT_MESSAGE = "User with email or username already exists"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginSession:
    user: UserOut
    tokens: TokenPair


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _as_aware(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def _is_future(value: Optional[dt.datetime]) -> bool:
    value = _as_aware(value)
    return value is not None and value > security.utc_now()


def operation(func):
    """Turn an unexpected exception inside a service operation into Err(INTERNAL)."""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs) -> Result:
        try:
            return await func(self, *args, **kwargs)
        except Exception:
            logger.exception("[auth] %s failed unexpectedly", func.__name__)
            return Err(ErrorKind.INTERNAL, "Internal server error")
    return wrapper


class AuthService:
    def __init__(self, store: UserStore, mailer: Mailer):
        self.store = store
        self.mailer = mailer

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _notify(self, to: str, subject: str, content) -> None:
        # Mail is never allowed to fail the surrounding operation
        try:
            await self.mailer.send_templated_email(to, subject, content)
        except Exception:
            logger.exception("[auth] mail '%s' to %s failed; ignored", subject, to)

    async def _send_verification_email(self, user: User, plain_token: str, verify_url_base: str) -> None:
        url = f"{verify_url_base.rstrip('/')}/{plain_token}"
        await self._notify(user.email, "Please verify your email", email_verification_content(user.username, url))

    async def _send_otp(self, user: User, otp: str, purpose: str) -> None:
        subject, content = otp_content(user.username, otp, purpose, settings.otp_expire_minutes)
        await self._notify(user.email, subject, content)

    async def _stage_otp(self, user: User) -> str:
        """
        Give the user a fresh OTP that no other user currently holds.

        The code alone identifies the user in verify_otp/reset, so a collision
        would hand one account's session to another. The unique column catches
        a concurrent claim of the same code.
        """
        for _ in range(OTP_ALLOCATION_ATTEMPTS):
            otp = generate_otp()
            if await self.store.otp_taken(otp, exclude_id=user.id):
                continue
            user.otp = otp
            user.otp_expiry = security.utc_now() + dt.timedelta(minutes=settings.otp_expire_minutes)
            try:
                await self.store.save(user, update_fields=["otp", "otp_expiry"])
            except IntegrityError:
                logger.debug("[auth] OTP claimed concurrently; drawing another")
                continue
            return otp
        raise RuntimeError("Could not allocate a free OTP")

    async def _issue_tokens(self, user: User, extra_fields: tuple[str, ...] = ()) -> TokenPair:
        """Mint an access/refresh pair and make the new refresh token the only valid one."""
        pair = TokenPair(
            access_token=security.issue_access_token(user),
            refresh_token=security.issue_refresh_token(user),
        )
        user.refresh_token = pair.refresh_token
        await self.store.save(user, update_fields=["refresh_token", *extra_fields])
        return pair

    @staticmethod
    async def _password_matches(user: User, password: str) -> bool:
        return await asyncio.to_thread(security.verify_password, password, user.password_hash)

    # ------------------------------------------------------------------
    # registration and email verification
    # ------------------------------------------------------------------
    @operation
    async def register(
        self,
        full_name: Optional[str],
        email: Optional[str],
        username: Optional[str],
        password: Optional[str],
        avatar: Optional[str],
        verify_url_base: str,
        cover_image: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Result:
        """
        Create an unverified account and mail a verification link.

        A taken username or email is reported as CONFLICT before any other
        field is looked at.
        """
        if await self.store.find_by_username_or_email(username=username, email=email):
            return Err(ErrorKind.CONFLICT, CONFLICT_MESSAGE)
        if any(_blank(v) for v in (full_name, email, username, password)):
            return Err(ErrorKind.VALIDATION, "All fields are required")
        problem = registration_error(full_name, email, username)
        if problem:
            return Err(ErrorKind.VALIDATION, problem)
        if _blank(avatar):
            return Err(ErrorKind.VALIDATION, "Avatar file is required")
        try:
            user_role = UserRole(role) if role else UserRole.USER
        except ValueError:
            return Err(ErrorKind.VALIDATION, "Invalid user role")

        token = security.generate_temporary_token()
        try:
            user = await self.store.create(
                password,
                full_name=full_name,
                email=email,
                username=username,
                avatar=avatar,
                cover_image=cover_image or None,
                role=user_role,
                is_email_verified=False,
                email_verification_token=token.hashed_token,
                email_verification_expiry=token.expiry,
            )
        except IntegrityError:
            # Lost a race with a concurrent registration of the same identity
            return Err(ErrorKind.CONFLICT, CONFLICT_MESSAGE)
        logger.info("[auth] registered user id=%s username=%s", user.id, user.username)
        await self._send_verification_email(user, token.plain_token, verify_url_base)
        return Ok(UserOut.from_user(user))

    @operation
    async def verify_email(self, plain_token: Optional[str]) -> Result:
        if _blank(plain_token):
            return Err(ErrorKind.VALIDATION, "Email verification token is missing")
        hashed = security.hash_temporary_token(plain_token)
        user = await self.store.find_by_verification_token(hashed)
        if user is None or not _is_future(user.email_verification_expiry):
            return Err(ErrorKind.INVALID_OR_EXPIRED, "Token is invalid or expired")

        user.clear_email_verification()
        user.is_email_verified = True
        await self.store.save(
            user,
            update_fields=["email_verification_token", "email_verification_expiry", "is_email_verified"],
        )
        return Ok({"isEmailVerified": True})

    @operation
    async def resend_email_verification(self, user_id: Any, verify_url_base: str) -> Result:
        user = await self.store.find_by_id(user_id)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist")
        if user.is_email_verified:
            return Err(ErrorKind.ALREADY_VERIFIED, "Email is already verified!")

        token = security.generate_temporary_token()
        user.email_verification_token = token.hashed_token
        user.email_verification_expiry = token.expiry
        await self.store.save(user, update_fields=["email_verification_token", "email_verification_expiry"])
        await self._send_verification_email(user, token.plain_token, verify_url_base)
        return Ok({})

    # ------------------------------------------------------------------
    # login / session
    # ------------------------------------------------------------------
    @operation
    async def login(self, email: Optional[str], username: Optional[str], password: Optional[str]) -> Result:
        """
        First login step: check the password, then mail an OTP.
        No tokens are issued here; see verify_otp.
        """
        if _blank(email) and _blank(username):
            return Err(ErrorKind.VALIDATION, "Please provide either username or email")
        if not _blank(email) and email_error(email):
            return Err(ErrorKind.VALIDATION, "Email is invalid")
        if _blank(password):
            return Err(ErrorKind.VALIDATION, "Password is required")

        user = await self.store.find_by_username_or_email(username=username, email=email)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User not found. Please check your credentials")
        if user.login_type != LoginType.EMAIL_PASSWORD:
            method = user.login_type.value.lower()
            return Err(
                ErrorKind.WRONG_LOGIN_METHOD,
                f"You have previously registered using {method}. "
                f"Please use the {method} login option to access your account.",
            )
        if not await self._password_matches(user, password):
            return Err(ErrorKind.INVALID_CREDENTIALS, "Invalid user credentials")

        otp = await self._stage_otp(user)
        await self._send_otp(user, otp, OTP_PURPOSE_LOGIN)
        return Ok({"email": user.email, "otpExpiresInMinutes": settings.otp_expire_minutes})

    @operation
    async def verify_otp(self, otp: Optional[str]) -> Result:
        """Second login step: consume the OTP and open a session."""
        if _blank(otp):
            return Err(ErrorKind.VALIDATION, "OTP is required")
        otp = str(otp).strip()
        user = await self.store.find_by_otp(otp)
        if user is None or user.otp != otp:
            return Err(ErrorKind.UNAUTHORIZED, "Invalid OTP")
        if not _is_future(user.otp_expiry):
            return Err(ErrorKind.UNAUTHORIZED, "OTP has expired")

        user.clear_otp()
        tokens = await self._issue_tokens(user, extra_fields=("otp", "otp_expiry"))
        logger.info("[auth] session opened for user id=%s", user.id)
        return Ok(LoginSession(user=UserOut.from_user(user), tokens=tokens))

    @operation
    async def refresh_access_token(self, presented: Optional[str]) -> Result:
        if _blank(presented):
            return Err(ErrorKind.UNAUTHORIZED, "Unauthorized request: Refresh token is missing")
        try:
            payload = security.verify_refresh_token(presented)
        except security.TokenExpired:
            return Err(ErrorKind.UNAUTHORIZED, "Refresh token has expired")
        except security.TokenError:
            return Err(ErrorKind.UNAUTHORIZED, "Invalid refresh token")

        user = await self.store.find_by_id(payload["sub"])
        if user is None:
            return Err(ErrorKind.UNAUTHORIZED, "Invalid refresh token: User not found")
        if not user.refresh_token or not secrets.compare_digest(presented, user.refresh_token):
            return Err(ErrorKind.UNAUTHORIZED, "Refresh token is expired or used")

        return Ok(await self._issue_tokens(user))

    @operation
    async def logout(self, user_id: Any) -> Result:
        user = await self.store.find_by_id_and_update(user_id, refresh_token=None)
        if user is None:
            return Err(ErrorKind.UNAUTHORIZED, "User does not exist")
        return Ok({"user": user.username})

    # ------------------------------------------------------------------
    # passwords
    # ------------------------------------------------------------------
    @operation
    async def change_password(
        self, user_id: Any, old_password: Optional[str], new_password: Optional[str]
    ) -> Result:
        if _blank(old_password):
            return Err(ErrorKind.VALIDATION, "Old password is required")
        if _blank(new_password):
            return Err(ErrorKind.VALIDATION, "New password is required")
        user = await self.store.find_by_id(user_id)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist")
        if not await self._password_matches(user, old_password):
            return Err(ErrorKind.INVALID_CREDENTIALS, "Invalid old password")

        user.set_password(new_password)
        await self.store.save(user, update_fields=["password_hash"])
        return Ok({})

    @operation
    async def forgot_password(self, email: Optional[str]) -> Result:
        if _blank(email):
            return Err(ErrorKind.VALIDATION, "Email is required")
        if email_error(email):
            return Err(ErrorKind.VALIDATION, "Email is invalid")
        user = await self.store.find_by_email(email)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")

        otp = await self._stage_otp(user)
        await self._send_otp(user, otp, OTP_PURPOSE_FORGOT_PASSWORD)
        return Ok({"email": user.email, "otpExpiresInMinutes": settings.otp_expire_minutes})

    @operation
    async def reset_password_with_otp(self, otp: Optional[str], new_password: Optional[str]) -> Result:
        if _blank(otp):
            return Err(ErrorKind.VALIDATION, "OTP is required")
        if _blank(new_password):
            return Err(ErrorKind.VALIDATION, "New password is required")
        otp = str(otp).strip()
        user = await self.store.find_by_otp(otp)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")
        if user.otp != otp or not _is_future(user.otp_expiry):
            return Err(ErrorKind.UNAUTHORIZED, "Invalid or expired OTP")

        user.set_password(new_password)
        user.clear_otp()
        await self.store.save(user, update_fields=["password_hash", "otp", "otp_expiry"])
        return Ok({})

    # ------------------------------------------------------------------
    # account
    # ------------------------------------------------------------------
    @operation
    async def get_current_user(self, user_id: Any) -> Result:
        user = await self.store.find_by_id(user_id)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist")
        return Ok(UserOut.from_user(user))

    @operation
    async def update_account_details(
        self, user_id: Any, full_name: Optional[str], email: Optional[str]
    ) -> Result:
        if _blank(full_name) or _blank(email):
            return Err(ErrorKind.VALIDATION, "All fields are required")
        if email_error(email):
            return Err(ErrorKind.VALIDATION, "Email is invalid")
        holder = await self.store.find_by_email(email)
        if holder is not None and str(holder.id) != str(user_id):
            return Err(ErrorKind.CONFLICT, "Email is already in use")

        try:
            user = await self.store.find_by_id_and_update(user_id, full_name=full_name, email=email)
        except IntegrityError:
            return Err(ErrorKind.CONFLICT, "Email is already in use")
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist")
        return Ok(UserOut.from_user(user))

    @operation
    async def assign_role(self, target_user_id: Any, role: Optional[str]) -> Result:
        """Overwrite a user's role. Caller must already have checked admin permission."""
        try:
            new_role = UserRole(role)
        except ValueError:
            return Err(ErrorKind.VALIDATION, "Invalid user role")
        user = await self.store.find_by_id(target_user_id)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist")

        user.role = new_role
        await self.store.save(user, update_fields=["role"])
        logger.info("[auth] role of user id=%s set to %s", user.id, new_role.value)
        return Ok({})
