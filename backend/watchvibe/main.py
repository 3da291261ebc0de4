# watchvibe/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Your configuration and DB
from watchvibe.config import settings
from watchvibe.core.db import init_db, close_db
from watchvibe.core.bootstrap import ensure_default_admin
from watchvibe.core.ratelimit import AttemptLimiter

from watchvibe.api.v1.responses import setup_exception_handlers
from watchvibe.api.v1.routers import users
from watchvibe.services.mailer import MailConfig, Mailer

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Mail transport and OTP attempt limiter are configured once here and reached through app.state
app.state.mailer = Mailer(MailConfig.from_settings(settings))
app.state.otp_limiter = AttemptLimiter(settings.otp_rate_limit, settings.rate_limit_storage_uri)

@app.on_event("startup")
async def on_startup():
    mail_config = app.state.mailer.config
    if mail_config.enabled:
        logger.info("[mail] SMTP %s:%s (tls=%s)", mail_config.smtp_host, mail_config.smtp_port, mail_config.use_tls)
    else:
        logger.warning("[mail] SMTP_HOST not set -> emails will be skipped")
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(users.router, prefix="/api/v1")

@app.get("/healthz")
def healthz():
    return {"ok": True}
