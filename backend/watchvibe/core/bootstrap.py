# watchvibe/core/bootstrap.py
"""
Bootstrap module for application initialization.
Handles initial setup tasks such as creating default admin user on first startup.
"""
import os
import logging
from watchvibe.models.user import User, UserRole
from watchvibe.services.user_store import UserStore

logger = logging.getLogger("uvicorn.error")

async def ensure_default_admin(store: UserStore | None = None) -> User | None:
    """
    If no admin exists in the database, create a default admin based on environment variables.
    Only takes effect under the following conditions:
      - Currently no user with role=ADMIN
      - And ADMIN_PASSWORD is set (to avoid using default weak password)
    Environment variables:
      ADMIN_USERNAME (default: "admin")
      ADMIN_EMAIL    (default: "admin@example.com")
      ADMIN_PASSWORD (required, otherwise won't create)
      ADMIN_AVATAR   (default: empty placeholder reference)
    """
    store = store or UserStore()

    if await User.filter(role=UserRole.ADMIN).exists():
        return None  # Skip creation if admin already exists

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return None

    admin_username = os.getenv("ADMIN_USERNAME", "admin").strip().lower()
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com").strip().lower()
    if await store.find_by_email(admin_email):
        logger.warning("[bootstrap] ADMIN_EMAIL %s already belongs to a regular user -> skip.", admin_email)
        return None

    # If username is already taken (user may register a regular account with "admin"), create a non-conflicting name
    base_username = admin_username
    suffix = 1
    while await User.filter(username=admin_username).exists():
        suffix += 1
        admin_username = f"{base_username}{suffix}"  # Append number suffix to make unique

    u = await store.create(
        admin_password,  # Hashed by User.save()
        username=admin_username,
        email=admin_email,
        full_name="Administrator",
        avatar=os.getenv("ADMIN_AVATAR", "about:blank"),
        role=UserRole.ADMIN,
        is_email_verified=True,
    )
    logger.warning("[bootstrap] Created default admin -> username=%s email=%s id=%s",
                   u.username, u.email, u.id)
    return u
