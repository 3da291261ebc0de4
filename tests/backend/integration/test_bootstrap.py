import pytest

from watchvibe.core.bootstrap import ensure_default_admin
from watchvibe.core.security import verify_password
from watchvibe.models.user import User, UserRole


pytestmark = pytest.mark.asyncio


async def test_skips_without_admin_password(db, monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    assert await ensure_default_admin() is None
    assert not await User.filter(role=UserRole.ADMIN).exists()


async def test_creates_admin_once(db, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", "Admin#Pass1")
    monkeypatch.setenv("ADMIN_EMAIL", "Root@Example.com")

    admin = await ensure_default_admin()
    assert admin is not None
    assert admin.role is UserRole.ADMIN
    assert admin.email == "root@example.com"
    assert admin.is_email_verified is True
    assert verify_password("Admin#Pass1", admin.password_hash)

    assert await ensure_default_admin() is None
    assert await User.filter(role=UserRole.ADMIN).count() == 1


async def test_username_collision_gets_suffix(db, monkeypatch, create_user):
    user, _ = await create_user()
    monkeypatch.setenv("ADMIN_PASSWORD", "Admin#Pass1")
    monkeypatch.setenv("ADMIN_USERNAME", user.username)
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")

    admin = await ensure_default_admin()
    assert admin.username == f"{user.username}2"


async def test_admin_can_log_in(client, monkeypatch, auth_header_factory):
    monkeypatch.setenv("ADMIN_PASSWORD", "Admin#Pass1")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    await ensure_default_admin()

    headers = await auth_header_factory("admin@example.com", "Admin#Pass1")
    resp = await client.get("/api/v1/users/current-user", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "ADMIN"
