"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

get_current_claims() is the access guard for protected routes. It reads the
Authorization: Bearer <token> header, verifies the token with the access
secret and attaches the decoded identity to request.state.claims.

  No header, a non-Bearer scheme or an empty token -> MissingTokenError (401)
  Bad signature, malformed or expired token         -> InvalidTokenError (403)

The guard is stateless: it consults only the TokenIssuer on app.state, never
the store. api/main.py renders both errors through the shared error envelope.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.exceptions import InvalidTokenError, MissingTokenError
from auth.models import AccessClaims
from auth.service import SessionService
from auth.tokens import TokenIssuer

_BEARER_SCHEME = "bearer"


def bearer_token(request: Request) -> str | None:
    """Return the bearer credential from the Authorization header, if any.

    The scheme name is matched case-insensitively (RFC 7235).
    """
    scheme, _, credential = request.headers.get("Authorization", "").strip().partition(" ")
    if scheme.lower() != _BEARER_SCHEME:
        return None
    return credential.strip() or None


def get_current_claims(request: Request) -> AccessClaims:
    """Require a valid access token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: AccessClaims = Depends(get_current_claims)): ...
    """
    token = bearer_token(request)
    if token is None:
        raise MissingTokenError()

    issuer: TokenIssuer = request.app.state.token_issuer
    try:
        claims = issuer.verify_access(token)
    except InvalidTokenError as exc:
        # Expired and forged tokens get the same response.
        raise InvalidTokenError() from exc

    request.state.claims = claims
    return claims


def get_session_service(request: Request) -> SessionService:
    """Return the SessionService built by the application lifespan."""
    return request.app.state.session_service
