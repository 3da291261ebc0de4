# watchvibe/core/result.py
"""
Tagged outcome of a service operation.

Expected business failures travel as Err values instead of exceptions; the
API layer decides which HTTP status each ErrorKind becomes.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    WRONG_LOGIN_METHOD = "WRONG_LOGIN_METHOD"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    INVALID_OR_EXPIRED = "INVALID_OR_EXPIRED"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[Any], Err]
