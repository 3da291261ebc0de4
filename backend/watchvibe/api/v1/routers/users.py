# watchvibe/api/v1/routers/users.py
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from watchvibe.api.v1.deps import get_auth_service, get_current_user, require_admin, throttle_otp_attempts
from watchvibe.api.v1.responses import api_response, error_response
from watchvibe.config import settings
from watchvibe.core.result import Err
from watchvibe.models.user import User
from watchvibe.schemas.user import (
    AssignRoleIn,
    ChangePasswordIn,
    ForgotPasswordIn,
    LoginIn,
    RefreshTokenIn,
    RegisterIn,
    ResetPasswordIn,
    UpdateAccountIn,
    VerifyOtpIn,
)
from watchvibe.services.auth_service import AuthService, TokenPair

router = APIRouter(prefix="/users", tags=["users"])

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _cookie_options() -> dict:
    return {"httponly": True, "secure": settings.cookie_secure, "samesite": settings.cookie_samesite}


def _set_auth_cookies(response: JSONResponse, tokens: TokenPair) -> JSONResponse:
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, **_cookie_options())
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, **_cookie_options())
    return response


def _clear_auth_cookies(response: JSONResponse) -> JSONResponse:
    response.delete_cookie(ACCESS_COOKIE, **_cookie_options())
    response.delete_cookie(REFRESH_COOKIE, **_cookie_options())
    return response


def _verify_url_base(request: Request) -> str:
    """Absolute URL of the verify-email endpoint, without the token segment."""
    base = settings.public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}/api/v1/users/verify-email"


@router.post("/register")
async def register(body: RegisterIn, request: Request, auth: AuthService = Depends(get_auth_service)):
    """
    Register a new user account.

    The account starts unverified; a verification link is mailed to the
    given address. Username/email already taken -> 409.
    """
    result = await auth.register(
        full_name=body.full_name,
        email=body.email,
        username=body.username,
        password=body.password,
        avatar=body.avatar,
        cover_image=body.cover_image,
        role=body.role,
        verify_url_base=_verify_url_base(request),
    )
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_201_CREATED, result.value.dump(), "User registered successfully")


@router.post("/login")
async def login(body: LoginIn, auth: AuthService = Depends(get_auth_service)):
    """
    First login step: verify the password and mail a one-time code.
    Tokens are only issued by /verifyotp.
    """
    result = await auth.login(email=body.email, username=body.username, password=body.password)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "OTP sent successfully")


@router.post("/verifyotp", dependencies=[Depends(throttle_otp_attempts)])
async def verify_otp(body: VerifyOtpIn, auth: AuthService = Depends(get_auth_service)):
    """
    Second login step: exchange the mailed OTP for an access/refresh token pair.
    Both tokens are returned in the body and set as HttpOnly cookies.
    Submissions are throttled per client address (429 when over the limit).
    """
    result = await auth.verify_otp(body.otp)
    if isinstance(result, Err):
        return error_response(result)
    session = result.value
    response = api_response(
        status.HTTP_200_OK,
        {
            "user": session.user.dump(),
            "accessToken": session.tokens.access_token,
            "refreshToken": session.tokens.refresh_token,
        },
        "User logged in successfully",
    )
    return _set_auth_cookies(response, session.tokens)


@router.post("/logout")
async def logout(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    result = await auth.logout(user.id)
    if isinstance(result, Err):
        return error_response(result)
    return _clear_auth_cookies(api_response(status.HTTP_200_OK, result.value, "User logged Out"))


@router.post("/refresh-token")
async def refresh_access_token(
    request: Request,
    body: Optional[RefreshTokenIn] = None,
    auth: AuthService = Depends(get_auth_service),
):
    """Rotate the session: the presented refresh token (cookie first, then body) is single use."""
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    result = await auth.refresh_access_token(presented)
    if isinstance(result, Err):
        return error_response(result)
    tokens = result.value
    response = api_response(
        status.HTTP_200_OK,
        {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
        "Access token refreshed",
    )
    return _set_auth_cookies(response, tokens)


@router.post("/change-password")
async def change_password(
    body: ChangePasswordIn,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    result = await auth.change_password(user.id, body.old_password, body.new_password)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "Password changed successfully")


@router.get("/current-user")
async def current_user(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    result = await auth.get_current_user(user.id)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value.dump(), "Current user fetched successfully")


@router.patch("/update-account")
async def update_account(
    body: UpdateAccountIn,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    result = await auth.update_account_details(user.id, body.full_name, body.email)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value.dump(), "Account details updated successfully")


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordIn, auth: AuthService = Depends(get_auth_service)):
    result = await auth.forgot_password(body.email)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "OTP sent successfully for password reset")


@router.post("/reset-password", dependencies=[Depends(throttle_otp_attempts)])
async def reset_password(body: ResetPasswordIn, auth: AuthService = Depends(get_auth_service)):
    result = await auth.reset_password_with_otp(body.otp, body.new_password)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "Password reset successfully")


@router.get("/verify-email/{verification_token}")
async def verify_email(verification_token: str, auth: AuthService = Depends(get_auth_service)):
    result = await auth.verify_email(verification_token)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "Email is verified")


@router.post("/resend-email-verification")
async def resend_email_verification(
    request: Request,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    result = await auth.resend_email_verification(user.id, _verify_url_base(request))
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "Mail has been sent to your mail ID")


@router.post("/assign-role/{user_id}")
async def assign_role(
    user_id: str,
    body: AssignRoleIn,
    _admin: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    """Change another user's role (admin only)."""
    result = await auth.assign_role(user_id, body.role)
    if isinstance(result, Err):
        return error_response(result)
    return api_response(status.HTTP_200_OK, result.value, "Role changed for the user")
