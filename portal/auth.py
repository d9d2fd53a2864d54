"""Signed-in user state for the portal, persisted in a record store."""

from __future__ import annotations

import logging
from typing import Optional

import anyio

from .api import PortalAPI
from .models import Role, User
from .store import SESSION_KEY, RecordStore

logger = logging.getLogger("mentorportal.auth")

AUTH_DELAY_MS = 1000


class AuthError(ValueError):
    """Base class for recoverable login and registration failures."""


class InvalidCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class EmailInUseError(AuthError):
    def __init__(self, email: str) -> None:
        super().__init__("Email already in use")
        self.email = email


class AuthSession:
    """Own the current user and keep it in sync with the session record.

    The session starts in the loading state; :meth:`restore` resolves it from
    whatever was persisted previously.
    """

    def __init__(self, api: PortalAPI, session_store: Optional[RecordStore] = None) -> None:
        self._api = api
        self._session_store = session_store if session_store is not None else api.store
        self._user: Optional[User] = None
        self._loading = True

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def restore(self) -> Optional[User]:
        """Load a previously persisted session; malformed data counts as none."""

        raw = self._session_store.load_value(SESSION_KEY)
        user: Optional[User] = None
        if raw is not None:
            try:
                user = User.from_record(raw)
            except (KeyError, TypeError, ValueError):
                logger.warning("Discarding malformed session record")
                self._session_store.remove(SESSION_KEY)
        elif self._session_store.get_item(SESSION_KEY) is not None:
            self._session_store.remove(SESSION_KEY)

        self._user = user
        self._loading = False
        return user

    async def login(self, email: str, password: str) -> User:
        self._loading = True
        try:
            await self._delay()
            result = await self._api.verify_credentials(email, password)
            if not result.success or result.data is None:
                logger.info("Rejected login for %s", email)
                raise InvalidCredentialsError()
            self._establish(result.data)
            logger.info("User %s signed in", result.data.id)
            return result.data
        finally:
            self._loading = False

    async def register(self, name: str, email: str, password: str, role: Role) -> User:
        """Create the account and sign it in immediately."""

        self._loading = True
        try:
            await self._delay()
            if not password:
                raise AuthError("Password must not be empty")
            try:
                result = await self._api.create_user(name, email, Role(role), password=password)
            except ValueError as exc:
                raise AuthError(str(exc)) from exc
            if not result.success or result.data is None:
                raise EmailInUseError(email)
            self._establish(result.data)
            return result.data
        finally:
            self._loading = False

    def logout(self) -> None:
        self._session_store.remove(SESSION_KEY)
        if self._user is not None:
            logger.info("User %s signed out", self._user.id)
        self._user = None

    def _establish(self, user: User) -> None:
        self._session_store.save_value(SESSION_KEY, user.to_record())
        self._user = user

    async def _delay(self) -> None:
        await anyio.sleep(AUTH_DELAY_MS / 1000 * self._api.latency_scale)


__all__ = [
    "AuthError",
    "AuthSession",
    "EmailInUseError",
    "InvalidCredentialsError",
]
