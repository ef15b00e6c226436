"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; routes map these onto the Pydantic contract in api/models.py.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    password_hash is a bcrypt digest; the plaintext is never stored.
    nickname and description are free-form profile fields with no invariants.
    """

    username: str
    password_hash: str
    id: int | None = None
    nickname: str | None = None
    description: str | None = None
    created_at: str | None = None


@dataclass
class RefreshToken:
    """One row of the refresh token ledger.

    The token string is the key. Presence in the ledger is what makes a
    refresh token usable; the signature only proves it was not tampered with.
    """

    token: str
    user_id: int
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class AccessClaims:
    """Identity decoded from a verified token. Never persisted."""

    user_id: int
    username: str
    issued_at: int  # epoch seconds
    expires_at: int  # epoch seconds


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    username: str
