# watchvibe/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "WatchVibe API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend (comma separated in CORS_ORIGINS)
    CORS_ORIGINS: list[str] = _env_list("CORS_ORIGINS", [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ])

    # Public URL used when building links inside emails; request base URL is used when unset
    public_base_url: str | None = os.getenv("PUBLIC_BASE_URL")

    # Access / refresh tokens (signed with different secrets)
    access_token_secret: str = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
    refresh_token_secret: str = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret")
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "10"))
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")

    # One-time material
    temporary_token_expire_minutes: int = int(os.getenv("TEMPORARY_TOKEN_EXPIRE_MINUTES", "20"))
    otp_expire_minutes: int = int(os.getenv("OTP_EXPIRE_MINUTES", "5"))

    # Attempts per client on OTP-accepting endpoints ("limits" notation)
    otp_rate_limit: str = os.getenv("OTP_RATE_LIMIT", "5/minute")
    rate_limit_storage_uri: str = os.getenv("RATE_LIMIT_STORAGE_URI", "async+memory://")

    # Cookie flags for accessToken / refreshToken
    cookie_secure: bool = _env_bool("COOKIE_SECURE", "true")
    cookie_samesite: str = os.getenv("COOKIE_SAMESITE", "lax")

    # Old clients expect 489 for a bad email verification token; 400 otherwise
    legacy_verification_status: bool = _env_bool("LEGACY_VERIFICATION_STATUS", "false")

    # SMTP transport (mail is skipped when SMTP_HOST is empty)
    smtp_host: str | None = os.getenv("SMTP_HOST")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: str | None = os.getenv("SMTP_USERNAME")
    smtp_password: str | None = os.getenv("SMTP_PASSWORD")
    smtp_use_tls: bool = _env_bool("SMTP_USE_TLS", "false")
    smtp_start_tls: bool = _env_bool("SMTP_START_TLS", "true")
    smtp_timeout: float = float(os.getenv("SMTP_TIMEOUT", "30"))
    mail_from: str = os.getenv("MAIL_FROM", "no-reply@watchvibe.local")

    # Branding shown in email bodies
    product_name: str = os.getenv("PRODUCT_NAME", "WatchVibe")
    product_link: str = os.getenv("PRODUCT_LINK", "http://localhost:2000")

settings = Settings()  # Instantiate configuration
