"""Shared pytest fixtures for the NewsBias API test suite."""

from __future__ import annotations

import time
from typing import Any
from unittest.mock import patch

import pytest
import redis
from httpx import ASGITransport, AsyncClient

from newsbias.core.config import get_settings
from newsbias.main import app
from newsbias.services.cache import ResponseCache

# ── In-memory Redis ─────────────────────────────────────────────────────────


def _slice(items: list[Any], start: int, end: int) -> list[Any]:
    """Apply Redis inclusive range semantics (``-1`` is the last item)."""
    stop = None if end == -1 else end + 1
    return items[start:stop]


class FakeRedis:
    """Tiny in-process stand-in for the Redis commands the app uses.

    Set ``fail = True`` to make every command raise
    ``redis.ConnectionError`` as if the server were unreachable.
    """

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.expires: dict[str, float] = {}
        self.fail = False
        self.closed = 0

    # ── internals ───────────────────────────────────────────

    def _check(self) -> None:
        if self.fail:
            raise redis.ConnectionError("Connection refused")

    def _purge(self, key: str) -> None:
        deadline = self.expires.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.data.pop(key, None)
            self.expires.pop(key, None)

    def _live(self, key: str) -> Any:
        self._purge(key)
        return self.data.get(key)

    # ── strings ─────────────────────────────────────────────

    def get(self, key: str) -> Any:
        self._check()
        return self._live(key)

    def set(
        self,
        key: str,
        value: Any,
        ex: int | None = None,
        nx: bool = False,
    ) -> bool | None:
        self._check()
        if nx and self._live(key) is not None:
            return None
        self.data[key] = str(value)
        if ex:
            self.expires[key] = time.monotonic() + ex
        else:
            self.expires.pop(key, None)
        return True

    def getdel(self, key: str) -> Any:
        self._check()
        value = self._live(key)
        self.data.pop(key, None)
        self.expires.pop(key, None)
        return value

    def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                removed += 1
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return removed

    def incr(self, key: str) -> int:
        self._check()
        value = int(self._live(key) or 0) + 1
        self.data[key] = str(value)
        return value

    def incrbyfloat(self, key: str, amount: float) -> float:
        self._check()
        value = float(self._live(key) or 0) + amount
        self.data[key] = repr(value)
        return value

    def ttl(self, key: str) -> int:
        self._check()
        if self._live(key) is None:
            return -2
        deadline = self.expires.get(key)
        if deadline is None:
            return -1
        return max(int(deadline - time.monotonic()), 0)

    def mget(self, *keys: str) -> list[Any]:
        self._check()
        return [self._live(key) for key in keys]

    # ── lists ───────────────────────────────────────────────

    def lpush(self, key: str, *values: Any) -> int:
        self._check()
        items = self._live(key) or []
        for value in values:
            items.insert(0, str(value))
        self.data[key] = items
        return len(items)

    def ltrim(self, key: str, start: int, end: int) -> bool:
        self._check()
        items = self._live(key) or []
        self.data[key] = _slice(items, start, end)
        return True

    def lrange(self, key: str, start: int, end: int) -> list[Any]:
        self._check()
        return _slice(self._live(key) or [], start, end)

    # ── connection ──────────────────────────────────────────

    def ping(self) -> bool:
        self._check()
        return True

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    def close(self) -> None:
        self.closed += 1


class FakePipeline:
    """Queues commands and replays them on ``execute()``."""

    def __init__(self, owner: FakeRedis) -> None:
        self._owner = owner
        self._calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def queue(*args, **kwargs):
            self._calls.append((name, args, kwargs))
            return self

        return queue

    def execute(self) -> list[Any]:
        self._owner._check()
        return [
            getattr(self._owner, name)(*args, **kwargs)
            for name, args, kwargs in self._calls
        ]


_REDIS_CLIENT_PATHS = (
    "newsbias.core.metrics.get_redis_client",
    "newsbias.core.rate_limit.get_redis_client",
    "newsbias.services.cache.get_redis_client",
    "newsbias.services.task_store.get_redis_client",
    "newsbias.api.deps.get_redis_client",
)


@pytest.fixture(autouse=True)
def fake_redis():
    """Route every Redis client the app creates to one ``FakeRedis``."""
    fake = FakeRedis()
    patchers = [patch(path, return_value=fake) for path in _REDIS_CLIENT_PATHS]
    for p in patchers:
        p.start()
    try:
        yield fake
    finally:
        for p in reversed(patchers):
            p.stop()


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Clear the response-cache singleton between tests."""
    ResponseCache.reset()
    yield
    ResponseCache.reset()


# ── Settings override ──────────────────────────────────────────────────────


@pytest.fixture
def settings(monkeypatch):
    """Return the live settings object with zero-delay retries.

    Attributes changed with ``monkeypatch.setattr`` are restored
    after the test.
    """
    s = get_settings()
    monkeypatch.setattr(s, "ANALYSIS_INITIAL_DELAY", 0.0)
    return s


# ── HTTP client ─────────────────────────────────────────────────────────────


@pytest.fixture
async def client() -> AsyncClient:  # type: ignore[misc]
    """
    Yield an async HTTP client bound to the FastAPI app.

    Usage::

        async def test_something(client: AsyncClient):
            response = await client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ── Provider payloads ──────────────────────────────────────────────────────


@pytest.fixture
def provider_payload() -> dict[str, Any]:
    """Return a realistic ``/everything`` response body."""
    return {
        "status": "ok",
        "totalResults": 2,
        "articles": [
            {
                "source": {"id": "reuters", "name": "Reuters"},
                "author": "Jane Doe",
                "title": "Climate talks stall",
                "description": "Negotiators fail to agree.",
                "url": "https://example.com/climate",
                "urlToImage": "https://example.com/climate.jpg",
                "publishedAt": "2024-05-01T10:00:00Z",
                "content": "Negotiators...",
            },
            {
                "source": {"id": None, "name": None},
                "author": None,
                "title": "Untitled wire story",
                "description": None,
                "url": "https://example.com/wire",
                "publishedAt": "2024-05-01T09:00:00Z",
            },
        ],
    }


@pytest.fixture
def completion_payload() -> dict[str, Any]:
    """Return an OpenAI-shaped chat completion."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1714557600,
        "model": "gpt-4o-mini-2024-07-18",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": "Objectivity score: 7/10 ...",
                },
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": 512,
            "completion_tokens": 256,
            "total_tokens": 768,
        },
    }
