# watchvibe/core/validation.py
"""
Field format rules for account data.

Each check returns the first failing message, or None when the value is
acceptable. Blank/required checks are the caller's job.
"""
from typing import Optional

from email_validator import EmailNotValidError, validate_email

MIN_USERNAME_LENGTH = 3
MIN_FULL_NAME_LENGTH = 3


def email_error(email: str) -> Optional[str]:
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return "Email is invalid"
    return None


def username_error(username: str) -> Optional[str]:
    username = username.strip()
    if username != username.lower():
        return "Username must be lowercase"
    if len(username) < MIN_USERNAME_LENGTH:
        return f"Username must be at least {MIN_USERNAME_LENGTH} characters long"
    return None


def full_name_error(full_name: str) -> Optional[str]:
    if len(full_name.strip()) < MIN_FULL_NAME_LENGTH:
        return f"Full name must be at least {MIN_FULL_NAME_LENGTH} characters long"
    return None


def registration_error(full_name: str, email: str, username: str) -> Optional[str]:
    """First format problem among the registration fields, in form order."""
    return email_error(email) or username_error(username) or full_name_error(full_name)
