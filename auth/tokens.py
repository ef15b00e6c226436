"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with two
       different secrets, so a token of one class can never verify as the
       other even if a client swaps them.

  Claims: sub (username), user_id, iat, exp and typ ("access" / "refresh").
       Refresh tokens add a random jti so two logins inside the same second
       still produce distinct ledger keys.

  Failures: verify() raises TokenExpiredError or TokenSignatureError. The two
       are logged differently, but both are InvalidTokenError and render as
       the same 403 response -- clients learn nothing about which check failed.

Layer rule: no imports from api/. The issuer is built from Settings by the
application lifespan and handed around explicitly.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.exceptions import InvalidTokenError, TokenExpiredError, TokenSignatureError
from auth.models import AccessClaims

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("authgate.auth")

_ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"


class TokenIssuer:
    """Mints and verifies access and refresh tokens.

    Usage:
        issuer = TokenIssuer(access_secret, refresh_secret,
                             access_ttl=3600, refresh_ttl=7 * 86400)
        token = issuer.issue_access(1, "alice")
        claims = issuer.verify_access(token)
    """

    def __init__(self, access_secret: str, refresh_secret: str, access_ttl: int, refresh_ttl: int) -> None:
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            settings.access_token_secret,
            settings.refresh_token_secret,
            access_ttl=settings.access_token_expire_seconds,
            refresh_ttl=settings.refresh_token_expire_seconds,
        )

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, user_id: int, username: str) -> str:
        return self._encode(user_id, username, ACCESS, self._access_secret, self.access_ttl)

    def issue_refresh(self, user_id: int, username: str) -> str:
        return self._encode(
            user_id,
            username,
            REFRESH,
            self._refresh_secret,
            self.refresh_ttl,
            jti=secrets.token_hex(16),
        )

    def _encode(self, user_id: int, username: str, token_type: str, secret: str, ttl: int, **extra) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "user_id": user_id,
            "typ": token_type,
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
            **extra,
        }
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_access(self, token: str) -> AccessClaims:
        return self.verify(token, self._access_secret, ACCESS)

    def verify_refresh(self, token: str) -> AccessClaims:
        return self.verify(token, self._refresh_secret, REFRESH)

    def verify(self, token: str, secret: str, token_type: str) -> AccessClaims:
        """Check signature and expiry and return the embedded identity.

        Raises TokenExpiredError past exp, TokenSignatureError for anything
        else (bad signature, malformed token, wrong token class, missing
        claims). Callers should catch InvalidTokenError.
        """
        try:
            payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            logger.debug("Rejected %s token: expired", token_type)
            raise TokenExpiredError() from exc
        except JWTError as exc:
            logger.debug("Rejected %s token: %s", token_type, exc)
            raise TokenSignatureError() from exc

        try:
            if payload.get("typ") != token_type:
                raise InvalidTokenError()
            return AccessClaims(
                user_id=int(payload["user_id"]),
                username=str(payload["sub"]),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
            )
        except (InvalidTokenError, KeyError, TypeError, ValueError) as exc:
            logger.debug("Rejected %s token: unexpected claims", token_type)
            raise TokenSignatureError() from exc
