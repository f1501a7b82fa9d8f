"""
Server-side session management.

Session data lives in a SessionStore keyed by an opaque id. The browser only
holds a signed cookie carrying that id, so the principal and CSRF token are
never exposed client-side.

Components:
- ServerSession: dict-like session data with change tracking
- SessionStore / InMemorySessionStore: storage with per-entry expiry
- SessionManager: loads sessions from requests and persists them on responses
"""

import asyncio
import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Any

from fastapi import Request, Response

from storefront.core.security import sign_session_id, unsign_session_id

logger = logging.getLogger(__name__)


class ServerSession(dict[str, Any]):
    """
    Session data for one browser.

    Mutations flag the session as modified so it is only written back when
    something changed. ``regenerate()`` asks for a fresh id on save (used on
    login to prevent session fixation); ``invalidate()`` drops it entirely.
    """

    def __init__(self, session_id: str | None = None, data: dict[str, Any] | None = None):
        super().__init__(data or {})
        self.session_id = session_id
        self.modified = False
        self.regenerate_requested = False
        self.invalidated = False

    @property
    def is_new(self) -> bool:
        return self.session_id is None

    def __setitem__(self, key: str, value: Any) -> None:
        super().__setitem__(key, value)
        self.modified = True

    def __delitem__(self, key: str) -> None:
        super().__delitem__(key)
        self.modified = True

    def pop(self, key: str, *args: Any) -> Any:
        if key in self:
            self.modified = True
        return super().pop(key, *args)

    def clear(self) -> None:
        super().clear()
        self.modified = True

    def regenerate(self) -> None:
        self.regenerate_requested = True
        self.modified = True

    def invalidate(self) -> None:
        self.clear()
        self.invalidated = True


class SessionStore(ABC):
    """Abstract storage backend for session data."""

    @abstractmethod
    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Return stored data, or None if missing or expired."""

    @abstractmethod
    async def set(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        """Store data under the id, replacing any previous value."""

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove the session if present."""


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    Sessions do not survive restarts. Expired entries are swept on every
    read and write, so abandoned sessions never accumulate.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _cleanup_expired(self, now: float) -> int:
        # Caller holds the lock.
        expired = [sid for sid, (expires_at, _) in self._entries.items() if expires_at <= now]
        for sid in expired:
            del self._entries[sid]
        return len(expired)

    async def get(self, session_id: str) -> dict[str, Any] | None:
        async with self._lock:
            self._cleanup_expired(time.monotonic())
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            return dict(entry[1])

    async def set(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        async with self._lock:
            now = time.monotonic()
            self._cleanup_expired(now)
            self._entries[session_id] = (now + ttl_seconds, dict(data))

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._entries.pop(session_id, None)

    async def purge_expired(self) -> int:
        """Drop expired sessions and return how many were removed."""
        async with self._lock:
            return self._cleanup_expired(time.monotonic())

    def __len__(self) -> int:
        return len(self._entries)


class SessionManager:
    """
    Bridges HTTP cookies and the session store.

    Args:
        store: Session storage backend
        cookie_name: Name of the session cookie
        max_age_seconds: Lifetime of both the cookie and the stored data
        secure: Send the cookie over HTTPS only (production)
        same_site: SameSite cookie attribute
    """

    def __init__(
        self,
        store: SessionStore,
        cookie_name: str,
        max_age_seconds: int,
        secure: bool = False,
        same_site: str = "lax",
    ):
        self.store = store
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self.secure = secure
        self.same_site = same_site

    async def load(self, request: Request) -> ServerSession:
        """
        Load the session referenced by the request cookie.

        Returns an empty new session when the cookie is absent, tampered
        with, expired, or points at a session that no longer exists.
        """
        cookie = request.cookies.get(self.cookie_name)
        if not cookie:
            return ServerSession()

        session_id = unsign_session_id(cookie)
        if session_id is None:
            return ServerSession()

        data = await self.store.get(session_id)
        if data is None:
            return ServerSession()

        return ServerSession(session_id=session_id, data=data)

    async def save(self, session: ServerSession, response: Response) -> None:
        """
        Persist session changes and update the cookie on the response.

        Unmodified sessions are left untouched; new sessions with nothing
        stored are never persisted.
        """
        if session.invalidated:
            if session.session_id is not None:
                await self.store.delete(session.session_id)
            self._clear_cookie(response)
            return

        if not session.modified:
            return

        if session.regenerate_requested and session.session_id is not None:
            await self.store.delete(session.session_id)
            session.session_id = None

        if session.is_new and not session:
            return

        if session.is_new:
            session.session_id = secrets.token_urlsafe(32)

        await self.store.set(session.session_id, dict(session), self.max_age_seconds)
        self._set_cookie(response, session.session_id)
        session.modified = False
        session.regenerate_requested = False

    def _set_cookie(self, response: Response, session_id: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=sign_session_id(session_id, self.max_age_seconds),
            max_age=self.max_age_seconds,
            httponly=True,
            secure=self.secure,
            samesite=self.same_site,
            path="/",
        )

    def _clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            httponly=True,
            secure=self.secure,
            samesite=self.same_site,
            path="/",
        )
