"""
Security utilities.

Password hashing for the bootstrap admin, and Redis key helpers.
"""

from __future__ import annotations

from uuid import UUID

import bcrypt as _bcrypt


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt (cost=12)."""
    password_bytes = password.encode("utf-8")[:72]
    salt = _bcrypt.gensalt(rounds=12)
    return _bcrypt.hashpw(password_bytes, salt).decode("utf-8")


# ---------------------------------------------------------------------------
# Redis key helpers
# ---------------------------------------------------------------------------

def ledger_lock_redis_key(sprint_id: UUID) -> str:
    """Redis key guarding ledger writes of one sprint. Format: ledger:sprint:{sprint_id}"""
    return f"ledger:sprint:{sprint_id}"
