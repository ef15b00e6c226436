"""
api/routes/v1/auth.py -- Registration and session token REST endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account; 201
  POST /api/v1/auth/login      -- password login; returns access + refresh tokens
  POST /api/v1/auth/refresh    -- mint a new access token from a refresh token
  POST /api/v1/auth/logout     -- revoke a refresh token; always 200
  GET  /api/v1/auth/me         -- identity from the access token (requires auth)

Security:
  register and login are plain `def` routes: FastAPI runs them in its thread
  pool, so bcrypt's deliberate slowness never stalls the event loop.
  Login and refresh responses carry Cache-Control: no-store.
  Errors raised by SessionService are AuthGateError subclasses and are
  rendered by the handler in api/main.py -- routes do not build error bodies.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from api.models import (
    ClaimsResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MeResponse,
    MessageResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
)
from auth.dependencies import get_current_claims, get_session_service
from auth.models import AccessClaims
from auth.service import SessionService

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/refresh:  public -- the refresh token is the credential
# - POST /api/v1/auth/logout:   public -- the refresh token is the credential
# - GET  /api/v1/auth/me:       requires access token (get_current_claims)
router = APIRouter()


@router.post("/auth/register", response_model=MessageResponse, status_code=201)
def register(
    body: RegisterRequest,
    service: SessionService = Depends(get_session_service),
) -> MessageResponse:
    """Create a new account. Does not log the user in."""
    service.register(body.username, body.password, body.nickname)
    return MessageResponse(message="User registered successfully")


@router.post("/auth/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: SessionService = Depends(get_session_service),
) -> LoginResponse:
    """Authenticate with username and password and return a token pair.

    Wrong username and wrong password produce the same 401 body.
    """
    result = service.login(body.username, body.password)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        username=result.username,
    )


@router.post("/auth/refresh", response_model=RefreshResponse)
def refresh(
    response: Response,
    body: Optional[RefreshRequest] = None,
    service: SessionService = Depends(get_session_service),
) -> RefreshResponse:
    """Mint a new access token. An absent body counts as a missing refresh token (401)."""
    access_token = service.refresh(body.refresh_token if body else None)
    response.headers["Cache-Control"] = "no-store"
    return RefreshResponse(access_token=access_token)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    body: Optional[LogoutRequest] = None,
    service: SessionService = Depends(get_session_service),
) -> MessageResponse:
    """Revoke the given refresh token. Succeeds even if it was never issued."""
    service.logout(body.refresh_token if body else None)
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/me", response_model=MeResponse)
async def me(claims: AccessClaims = Depends(get_current_claims)) -> MeResponse:
    """Return the identity carried by the caller's access token."""
    return MeResponse(message="This is a protected route", user=ClaimsResponse.from_claims(claims))
