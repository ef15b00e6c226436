"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Cost factor: the configured rounds apply to new hashes only. bcrypt stores
salt and cost inside every digest and checkpw() reads them back, so digests
written under an older, lower cost keep verifying after the setting changes.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import bcrypt

# bcrypt only consumes the first 72 bytes of input; newer releases raise
# instead of truncating, so we reject early with a clear message.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, cost-parameterized one-way hashing with constant-time verify.

    Usage:
        hasher = PasswordHasher(rounds=10)
        digest = hasher.hash("s3cret!")
        hasher.verify("s3cret!", digest)   # True
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        # Timing equalization dummy hash. Computed once so the first
        # unknown-username login is not measurably slower than later ones.
        self._dummy_hash = self.hash("authgate_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain. Raises ValueError past 72 bytes."""
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches the digest. Malformed input is a mismatch."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> None:
        """Burn one verify's worth of CPU for a login whose user does not exist.

        Response time then does not reveal whether a username is registered.
        """
        self.verify(plain, self._dummy_hash)
