# watchvibe/core/otp.py
"""
One-time passcode generation for the second login step and password resets.
Persistence and expiry of the code are the caller's job.
"""
import secrets

OTP_MIN = 1000
OTP_MAX = 9999


def generate_otp() -> str:
    """Return a uniformly distributed 4-digit code (1000-9999) as a string."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
