# watchvibe/api/v1/responses.py
"""
Response envelope and error mapping for the REST API.

Every response body has the same shape:
    {"statusCode": int, "data": any | null, "message": str, "success": bool}

Service Err kinds, HTTPExceptions raised by dependencies and request body
validation errors are all rendered through this envelope.
"""
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from watchvibe.config import settings
from watchvibe.core.result import Err, ErrorKind

logger = logging.getLogger(__name__)

LEGACY_INVALID_TOKEN_STATUS = 489

ERROR_KIND_TO_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.WRONG_LOGIN_METHOD: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_VERIFIED: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_OR_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(kind: ErrorKind) -> int:
    if kind is ErrorKind.INVALID_OR_EXPIRED and settings.legacy_verification_status:
        return LEGACY_INVALID_TOKEN_STATUS
    return ERROR_KIND_TO_STATUS[kind]


def api_response(status_code: int, data: Any, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": data,
            "message": message,
            "success": status_code < 400,
        },
    )


def error_response(err: Err) -> JSONResponse:
    return api_response(status_for(err.kind), None, err.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = api_response(exc.status_code, None, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.debug("request validation failed on %s: %s", request.url.path, errors)
    return api_response(status.HTTP_400_BAD_REQUEST, None, message)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
