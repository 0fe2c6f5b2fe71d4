"""Tests for master admin bootstrap and password hashing."""

import bcrypt

from scrumboard.core.config import settings
from scrumboard.core.security import hash_password, ledger_lock_redis_key
from scrumboard.models.user import UserRole
from scrumboard.services.bootstrap_service import ensure_master_admin


def _matches(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def test_password_hash_is_bcrypt():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert hashed.startswith("$2b$12$")
    assert _matches("correct horse", hashed)
    assert not _matches("wrong horse", hashed)


def test_ledger_lock_key():
    assert ledger_lock_redis_key("abc") == "ledger:sprint:abc"


async def test_creates_master_admin_once(db, monkeypatch):
    monkeypatch.setattr(settings, "MASTER_ADMIN_PASSWORD", "s3cret-pass")

    admin = await ensure_master_admin(db)
    again = await ensure_master_admin(db)

    assert admin is not None
    assert again.id == admin.id
    assert admin.role == UserRole.master_admin
    assert admin.email == settings.MASTER_ADMIN_EMAIL.lower()
    assert _matches("s3cret-pass", admin.password_hash)


async def test_skipped_without_password(db, monkeypatch):
    monkeypatch.setattr(settings, "MASTER_ADMIN_PASSWORD", "")
    assert await ensure_master_admin(db) is None
