# watchvibe/api/v1/deps.py
import logging

from fastapi import Depends, Header, HTTPException, Request, status

from watchvibe.core.ratelimit import AttemptLimiter
from watchvibe.core.security import TokenError, verify_access_token
from watchvibe.models.user import User, UserRole
from watchvibe.services.auth_service import AuthService
from watchvibe.services.mailer import Mailer
from watchvibe.services.user_store import UserStore

logger = logging.getLogger(__name__)


def get_mailer(request: Request) -> Mailer:
    """The Mailer built at startup (see main.on_startup)."""
    return request.app.state.mailer


def get_otp_limiter(request: Request) -> AttemptLimiter:
    return request.app.state.otp_limiter


async def throttle_otp_attempts(
    request: Request,
    limiter: AttemptLimiter = Depends(get_otp_limiter),
) -> None:
    """
    FastAPI dependency limiting OTP submissions per client address.

    Raises:
        HTTPException (429): If the client is over the configured limit
    """
    client_key = request.client.host if request.client else "anonymous"
    if not await limiter.hit(client_key):
        retry_after = await limiter.retry_after(client_key)
        logger.warning("[auth] OTP attempts throttled for %s on %s", client_key, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Please try again later",
            headers={"Retry-After": str(retry_after)},
        )


def get_user_store() -> UserStore:
    return UserStore()


def get_auth_service(
    store: UserStore = Depends(get_user_store),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    return AuthService(store, mailer)


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    store: UserStore = Depends(get_user_store),
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    This dependency extracts and validates the access token from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly cookie (accessToken) - fallback method

    Raises:
        HTTPException (401): If no token is provided, the token is invalid or
            expired, or the user no longer exists
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie: accessToken
    if not token:
        token = request.cookies.get("accessToken")

    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized request")

    try:
        payload = verify_access_token(token)
    except TokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid access token")

    user = await store.find_by_id(payload["sub"])
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid access token")
    return user


async def require_admin(current: User = Depends(get_current_user)) -> User:
    """
    FastAPI dependency to ensure the current user is an administrator.

    Raises:
        HTTPException (403): If user is not an admin
        HTTPException (401): If user is not authenticated (from get_current_user)
    """
    if current.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to perform this action")
    return current
