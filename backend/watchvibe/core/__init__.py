"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Default admin creation on first startup
- db: Database configuration and connection management
- otp: One-time passcode generation
- result: Ok / Err outcome type returned by services
- security: Password hashing, access/refresh tokens, temporary tokens
"""
