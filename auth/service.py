"""
auth/service.py -- Session lifecycle: register, login, refresh, logout.

SessionService orchestrates the store, the password hasher and the token
issuer. It is the translation boundary for failures: every database error
is logged here with full detail and re-raised as StoreUnavailableError, so
nothing below this layer ever reaches a client as a raw exception.

Audit logging records usernames, user ids and outcomes. Passwords, hashes
and token values are never logged.

Threading: hashing and verifying passwords is deliberately slow. The API
exposes register/login as plain `def` routes, so FastAPI runs them in its
worker thread pool and the event loop keeps serving other clients.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from auth.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    StoreUnavailableError,
    UserNotFoundError,
    ValidationError,
)
from auth.models import AccessClaims, LoginResult, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("authgate.auth")


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate database failures into StoreUnavailableError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", operation)
        raise StoreUnavailableError() from exc


class SessionService:
    """Register accounts and run the access/refresh token lifecycle.

    refresh_checks_ledger controls whether a refresh token must still be in
    the ledger to mint an access token. With it off, logout only removes the
    ledger row and the token keeps working until its own expiry.
    """

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        refresh_checks_ledger: bool = True,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.refresh_checks_ledger = refresh_checks_ledger

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, username: str, password: str, nickname: str | None = None) -> int:
        """Create an account and return its id. No tokens are issued.

        Raises ValidationError for empty fields or an over-long password and
        AlreadyExistsError if the username is taken.
        """
        if not username or not password:
            raise ValidationError()
        try:
            password_hash = self.hasher.hash(password)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        with _store_errors("register"):
            # create_user() raises AlreadyExistsError on the UNIQUE constraint,
            # which also covers two concurrent registrations of one name.
            user_id = self.store.create_user(username, password_hash, nickname or None)

        if nickname:
            logger.info("Registered user %s (id=%d, nickname=%s)", username, user_id, nickname)
        else:
            logger.info("Registered user %s (id=%d)", username, user_id)
        return user_id

    def seed_users(self, accounts: dict[str, str]) -> list[str]:
        """Create any of the given username -> password accounts that are missing.

        Returns the usernames that were created. Existing accounts are left
        untouched, so this is safe to run on every startup.
        """
        created: list[str] = []
        for username, password in accounts.items():
            with _store_errors("seed"):
                existing = self.store.get_by_username(username)
            if existing is not None:
                continue
            self.register(username, password)
            created.append(username)
        if created:
            logger.info("Seeded default users: %s", ", ".join(created))
        return created

    # ------------------------------------------------------------------
    # Login / refresh / logout
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResult:
        """Verify credentials and issue an access + refresh token pair.

        Unknown username and wrong password raise the same
        InvalidCredentialsError; only the server log tells them apart. bcrypt
        runs in both branches so timing does not leak which one it was.
        """
        if not username or not password:
            raise ValidationError()

        with _store_errors("login"):
            user = self.store.get_by_username(username)
        if user is None:
            self.hasher.verify_dummy(password)
            logger.info("Failed login for %s (user not found)", username)
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Failed login for %s (invalid password)", username)
            raise InvalidCredentialsError()

        access_token = self.issuer.issue_access(user.id, user.username)
        refresh_token = self.issuer.issue_refresh(user.id, user.username)
        with _store_errors("login"):
            self.store.store_refresh_token(refresh_token, user.id)

        logger.info("User logged in: %s (id=%d)", user.username, user.id)
        return LoginResult(access_token=access_token, refresh_token=refresh_token, username=user.username)

    def refresh(self, refresh_token: str | None) -> str:
        """Mint a new access token from a refresh token. The refresh token is not rotated.

        Raises MissingTokenError for an empty token and InvalidTokenError if
        the signature or expiry check fails, or (with ledger checking on) if
        the token has been revoked.
        """
        if not refresh_token:
            raise MissingTokenError("Refresh token required.")
        try:
            claims: AccessClaims = self.issuer.verify_refresh(refresh_token)
        except InvalidTokenError as exc:
            raise InvalidTokenError("Invalid refresh token.") from exc

        if self.refresh_checks_ledger:
            with _store_errors("refresh"):
                owner = self.store.find_refresh_token_owner(refresh_token)
            if owner != claims.user_id:
                logger.info("Rejected refresh for %s (token not in ledger)", claims.username)
                raise InvalidTokenError("Invalid refresh token.")

        return self.issuer.issue_access(claims.user_id, claims.username)

    def logout(self, refresh_token: str | None) -> None:
        """Revoke a refresh token. Always succeeds, even for unknown tokens."""
        username = "unknown"
        if refresh_token:
            try:
                username = self.store.find_refresh_token_username(refresh_token) or username
            except SQLAlchemyError:
                logger.warning("Could not resolve username for logout", exc_info=True)

        with _store_errors("logout"):
            self.store.delete_refresh_token(refresh_token or "")
        logger.info("User logged out: %s", username)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, user_id: int) -> User:
        with _store_errors("profile"):
            user = self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def update_description(self, user_id: int, description: str) -> str:
        with _store_errors("profile update"):
            updated = self.store.update_description(user_id, description)
        if not updated:
            raise UserNotFoundError()
        logger.info("User id=%d updated description", user_id)
        return description
