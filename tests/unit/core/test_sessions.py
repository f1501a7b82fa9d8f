"""
Unit tests for server-side sessions.

Tests cover:
- ServerSession change tracking
- InMemorySessionStore expiry
- SessionManager load / save cookie handling
"""

from http.cookies import SimpleCookie

import pytest
from fastapi import Request, Response

from storefront.core.security import sign_session_id
from storefront.core.sessions import InMemorySessionStore, ServerSession, SessionManager

COOKIE = "zk_session"


def make_request(cookie_value: str | None = None) -> Request:
    headers = []
    if cookie_value is not None:
        headers.append((b"cookie", f"{COOKIE}={cookie_value}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def cookie_from(response: Response) -> SimpleCookie:
    cookie = SimpleCookie()
    cookie.load(response.headers["set-cookie"])
    return cookie


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def manager(store: InMemorySessionStore) -> SessionManager:
    return SessionManager(store=store, cookie_name=COOKIE, max_age_seconds=3600)


class TestServerSession:
    def test_new_session_is_unmodified(self) -> None:
        session = ServerSession()

        assert session.is_new
        assert not session.modified

    def test_setitem_marks_modified(self) -> None:
        session = ServerSession()
        session["a"] = 1
        assert session.modified

    def test_pop_missing_key_does_not_mark_modified(self) -> None:
        session = ServerSession("sid", {"a": 1})

        assert session.pop("b", None) is None
        assert not session.modified

        session.pop("a")
        assert session.modified

    def test_invalidate_clears_data(self) -> None:
        session = ServerSession("sid", {"a": 1})

        session.invalidate()

        assert session == {}
        assert session.invalidated


class TestInMemorySessionStore:
    @pytest.mark.asyncio
    async def test_set_and_get(self, store: InMemorySessionStore) -> None:
        await store.set("sid", {"a": 1}, ttl_seconds=60)
        assert await store.get("sid") == {"a": 1}

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, store: InMemorySessionStore) -> None:
        await store.set("sid", {"a": 1}, ttl_seconds=60)

        data = await store.get("sid")
        data["a"] = 2

        assert await store.get("sid") == {"a": 1}

    @pytest.mark.asyncio
    async def test_expired_entry_is_dropped(self, store: InMemorySessionStore) -> None:
        await store.set("sid", {"a": 1}, ttl_seconds=0)

        assert await store.get("sid") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_purge_expired(self, store: InMemorySessionStore) -> None:
        await store.set("live", {}, ttl_seconds=60)
        await store.set("old", {}, ttl_seconds=0)

        assert await store.purge_expired() == 1
        assert await store.get("live") == {}

    @pytest.mark.asyncio
    async def test_write_sweeps_other_expired_entries(self, store: InMemorySessionStore) -> None:
        await store.set("abandoned-1", {"a": 1}, ttl_seconds=0)
        await store.set("abandoned-2", {"a": 2}, ttl_seconds=0)
        await store.set("live", {"a": 3}, ttl_seconds=60)

        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_read_sweeps_other_expired_entries(self, store: InMemorySessionStore) -> None:
        await store.set("live", {}, ttl_seconds=60)
        await store.set("abandoned", {}, ttl_seconds=0)

        assert await store.get("live") == {}
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_delete(self, store: InMemorySessionStore) -> None:
        await store.set("sid", {"a": 1}, ttl_seconds=60)
        await store.delete("sid")
        await store.delete("sid")

        assert await store.get("sid") is None


class TestSessionManagerLoad:
    @pytest.mark.asyncio
    async def test_no_cookie_gives_new_session(self, manager: SessionManager) -> None:
        session = await manager.load(make_request())
        assert session.is_new

    @pytest.mark.asyncio
    async def test_tampered_cookie_gives_new_session(self, manager: SessionManager) -> None:
        session = await manager.load(make_request("forged-value"))
        assert session.is_new

    @pytest.mark.asyncio
    async def test_unknown_session_gives_new_session(self, manager: SessionManager) -> None:
        session = await manager.load(make_request(sign_session_id("missing", 3600)))
        assert session.is_new

    @pytest.mark.asyncio
    async def test_loads_stored_data(
        self, manager: SessionManager, store: InMemorySessionStore
    ) -> None:
        await store.set("sid", {"a": 1}, ttl_seconds=60)

        session = await manager.load(make_request(sign_session_id("sid", 3600)))

        assert session.session_id == "sid"
        assert session == {"a": 1}


class TestSessionManagerSave:
    @pytest.mark.asyncio
    async def test_empty_new_session_is_not_persisted(
        self, manager: SessionManager, store: InMemorySessionStore
    ) -> None:
        response = Response()

        await manager.save(ServerSession(), response)

        assert "set-cookie" not in response.headers
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_new_session_sets_http_only_cookie(
        self, manager: SessionManager, store: InMemorySessionStore
    ) -> None:
        session = ServerSession()
        session["a"] = 1
        response = Response()

        await manager.save(session, response)

        header = response.headers["set-cookie"].lower()
        assert "httponly" in header
        assert "samesite=lax" in header
        assert session.session_id is not None
        assert await store.get(session.session_id) == {"a": 1}

        loaded = await manager.load(make_request(cookie_from(response)[COOKIE].value))
        assert loaded.session_id == session.session_id

    @pytest.mark.asyncio
    async def test_unmodified_session_is_not_rewritten(self, manager: SessionManager) -> None:
        response = Response()

        await manager.save(ServerSession("sid", {"a": 1}), response)

        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_regenerate_issues_new_id_and_keeps_data(
        self, manager: SessionManager, store: InMemorySessionStore
    ) -> None:
        await store.set("old-id", {"csrf_token": "t"}, ttl_seconds=60)
        session = ServerSession("old-id", {"csrf_token": "t"})
        session.regenerate()
        session["principal"] = {"id": 1}

        await manager.save(session, Response())

        assert session.session_id != "old-id"
        assert await store.get("old-id") is None
        assert await store.get(session.session_id) == {
            "csrf_token": "t",
            "principal": {"id": 1},
        }

    @pytest.mark.asyncio
    async def test_invalidate_deletes_and_clears_cookie(
        self, manager: SessionManager, store: InMemorySessionStore
    ) -> None:
        await store.set("sid", {"a": 1}, ttl_seconds=60)
        session = ServerSession("sid", {"a": 1})
        session.invalidate()
        response = Response()

        await manager.save(session, response)

        assert await store.get("sid") is None
        assert 'max-age=0' in response.headers["set-cookie"].lower()

    @pytest.mark.asyncio
    async def test_secure_flag(self, store: InMemorySessionStore) -> None:
        manager = SessionManager(store, COOKIE, 3600, secure=True)
        session = ServerSession()
        session["a"] = 1
        response = Response()

        await manager.save(session, response)

        assert "secure" in response.headers["set-cookie"].lower()
