import os
import uuid
from dataclasses import dataclass

TEST_DB_URL = "sqlite://:memory:"
os.environ["DATABASE_URL"] = TEST_DB_URL
# Test client talks plain http; secure cookies would never be sent back
os.environ["COOKIE_SECURE"] = "false"
os.environ.pop("ADMIN_PASSWORD", None)
os.environ.pop("PUBLIC_BASE_URL", None)

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from watchvibe.api.v1.deps import get_mailer
from watchvibe.config import settings
from watchvibe.core import db as db_module
from watchvibe.core.ratelimit import AttemptLimiter
from watchvibe.main import app
from watchvibe.models.user import LoginType, User, UserRole
from watchvibe.services.auth_service import AuthService
from watchvibe.services.mail_templates import MailContent
from watchvibe.services.user_store import UserStore

db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


@dataclass
class SentMail:
    to: str
    subject: str
    content: MailContent


class RecordingMailer:
    """Stands in for Mailer; keeps every message instead of talking SMTP."""

    def __init__(self):
        self.sent: list[SentMail] = []

    async def send_templated_email(self, to: str, subject: str, content: MailContent) -> bool:
        self.sent.append(SentMail(to=to, subject=subject, content=content))
        return True

    def last_for(self, to: str) -> SentMail:
        matches = [m for m in self.sent if m.to == to]
        assert matches, f"no mail sent to {to}"
        return matches[-1]

    def verification_token_for(self, to: str) -> str:
        """The plain token is the last path segment of the verification link."""
        mail = self.last_for(to)
        assert mail.content.action is not None
        return mail.content.action.link.rsplit("/", 1)[1]


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def mailer():
    return RecordingMailer()


@pytest_asyncio.fixture
async def auth_service(db, mailer):
    return AuthService(UserStore(), mailer)


@pytest_asyncio.fixture
async def client(db, mailer):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB
    and the recording mailer. OTP attempt counters start empty for each test.
    """
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.state.otp_limiter = AttemptLimiter(settings.otp_rate_limit, "async+memory://")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def create_user(db):
    """
    Factory fixture to create users directly through the store.
    """

    async def _create_user(
        password: str = "UserPass!23",
        role: UserRole = UserRole.USER,
        login_type: LoginType = LoginType.EMAIL_PASSWORD,
        verified: bool = True,
    ) -> tuple[User, str]:
        suffix = uuid.uuid4().hex[:6]
        user = await UserStore().create(
            password,
            username=f"user_{suffix}",
            email=f"{suffix}@example.com",
            full_name=f"User {suffix}",
            avatar="https://media.example.com/avatar.png",
            role=role,
            login_type=login_type,
            is_email_verified=verified,
        )
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def login(client):
    """
    Run both login steps over HTTP and return the verifyotp response.
    The OTP is read back from the database, as a user would read it from the mail.
    """

    async def _login(identifier: dict, password: str):
        resp = await client.post("/api/v1/users/login", json={**identifier, "password": password})
        assert resp.status_code == 200, resp.text
        lookup = {"email": identifier["email"]} if "email" in identifier else {"username": identifier["username"]}
        user = await User.get(**lookup)
        return await client.post("/api/v1/users/verifyotp", json={"otp": user.otp})

    return _login


@pytest_asyncio.fixture
async def auth_header_factory(login):
    """
    Helper fixture to obtain Authorization headers via the two-step login.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await login({"email": email}, password)
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers
