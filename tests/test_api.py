"""Tests for the NewsBias API endpoints."""

from __future__ import annotations

import copy
import hashlib
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from newsbias.core.exceptions import (
    ArticleParseError,
    InvalidCredentialsError,
    ProviderRateLimitError,
)
from newsbias.services.task_store import TaskStore
from newsbias.workers.analysis_task import analyze_article_task

_TASK_ID = "0b7e9c2d-1a3f-4e5b-9c8d-7f6e5d4c3b2a"


@pytest.fixture
def mock_queue():
    """Patch the Celery task and result lookup used by the queue service."""
    with (
        patch("newsbias.services.analysis_queue.analyze_article_task") as task,
        patch("newsbias.services.analysis_queue.AsyncResult") as async_result,
    ):
        async_result.return_value.state = "PENDING"
        yield task, async_result


# ── Request id ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_response_carries_request_id(client: AsyncClient):
    """Response includes X-Request-ID header from middleware."""
    response = await client.get("/health")

    assert "x-request-id" in response.headers


@pytest.mark.asyncio
async def test_echoes_custom_request_id(client: AsyncClient):
    """Client-supplied X-Request-ID is echoed back."""
    response = await client.get(
        "/health",
        headers={"X-Request-ID": "custom-rid-42"},
    )

    assert response.headers["x-request-id"] == "custom-rid-42"


@pytest.mark.asyncio
async def test_unknown_route_is_404(client: AsyncClient):
    """Unknown paths use the error body shape."""
    response = await client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {
        "status": "error",
        "message": "Not Found - /api/nope",
    }


# ── POST /api/search ────────────────────────────────────────


class TestSearchEndpoint:
    """News search."""

    @pytest.mark.asyncio
    async def test_returns_normalised_articles(
        self,
        client: AsyncClient,
        provider_payload,
    ):
        """Articles are normalised and totals passed through."""
        with patch(
            "newsbias.api.routes.search.search_articles",
            return_value=provider_payload,
        ) as mock_search:
            response = await client.post("/api/search", json={"query": "  climate "})

        assert response.status_code == 200
        mock_search.assert_called_once_with("climate")
        data = response.json()
        assert data["status"] == "success"
        assert data["totalResults"] == 2
        assert data["articles"][0] == {
            "id": 0,
            "title": "Climate talks stall",
            "url": "https://example.com/climate",
            "author": "Jane Doe",
            "publisher": "Reuters",
            "publishedAt": "2024-05-01T10:00:00Z",
            "description": "Negotiators fail to agree.",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}, {"query": 5}])
    async def test_rejects_invalid_query(self, client: AsyncClient, body):
        """Missing, blank and non-string queries are 400s."""
        with patch("newsbias.api.routes.search.search_articles") as mock_search:
            response = await client.post("/api/search", json=body)

        assert response.status_code == 400
        assert response.json()["status"] == "error"
        mock_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_query_message(self, client: AsyncClient):
        """The validator's message is returned verbatim."""
        response = await client.post("/api/search", json={"query": " "})

        assert response.json()["message"] == "Search query must be a non-empty string"

    @pytest.mark.asyncio
    async def test_eleventh_search_is_rejected(
        self,
        client: AsyncClient,
        provider_payload,
    ):
        """The search tier admits ten requests per window."""
        with patch(
            "newsbias.api.routes.search.search_articles",
            return_value=provider_payload,
        ) as mock_search:
            for _ in range(10):
                ok = await client.post("/api/search", json={"query": "climate"})
                assert ok.status_code == 200
            response = await client.post("/api/search", json={"query": "climate"})

        assert response.status_code == 429
        assert response.json() == {
            "status": "error",
            "message": (
                "Search rate limit exceeded. "
                "Maximum 10 searches per 5 minutes allowed."
            ),
        }
        assert "retry-after" in response.headers
        assert mock_search.call_count == 10

    @pytest.mark.asyncio
    async def test_search_does_not_use_basic_tier(
        self,
        client: AsyncClient,
        provider_payload,
        fake_redis,
    ):
        """Search is charged against its own tier only."""
        with patch(
            "newsbias.api.routes.search.search_articles",
            return_value=provider_payload,
        ):
            await client.post("/api/search", json={"query": "climate"})

        assert fake_redis.get("ratelimit:basic:127.0.0.1") is None
        assert fake_redis.get("ratelimit:search:127.0.0.1") == "1"

    @pytest.mark.asyncio
    async def test_invalid_provider_key(self, client: AsyncClient):
        """Provider credential errors become 500s."""
        with patch(
            "newsbias.api.routes.search.search_articles",
            side_effect=InvalidCredentialsError("Invalid News API key"),
        ):
            response = await client.post("/api/search", json={"query": "climate"})

        assert response.status_code == 500
        assert response.json()["message"] == "Invalid News API key"

    @pytest.mark.asyncio
    async def test_provider_throttled(self, client: AsyncClient):
        """Provider throttling is reported with its own message."""
        with patch(
            "newsbias.api.routes.search.search_articles",
            side_effect=ProviderRateLimitError("News API rate limit exceeded"),
        ):
            response = await client.post("/api/search", json={"query": "climate"})

        assert response.status_code == 500
        assert response.json()["message"] == "News API rate limit exceeded"


# ── GET /api/parse ──────────────────────────────────────────


class TestParseEndpoint:
    """Article extraction."""

    @pytest.mark.asyncio
    async def test_returns_text_as_json_string(self, client: AsyncClient):
        """The body is a JSON string."""
        with patch(
            "newsbias.api.routes.parse.parse_article",
            return_value="Negotiators failed to agree.",
        ) as mock_parse:
            response = await client.get(
                "/api/parse",
                params={"url": "https://example.com/a"},
            )

        assert response.status_code == 200
        assert response.json() == "Negotiators failed to agree."
        mock_parse.assert_called_once_with("https://example.com/a")

    @pytest.mark.asyncio
    async def test_missing_url(self, client: AsyncClient):
        """A missing URL is a 400."""
        response = await client.get("/api/parse")

        assert response.status_code == 400
        assert response.json()["message"] == "URL is required"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/a", "/relative"])
    async def test_invalid_url(self, client: AsyncClient, url):
        """Malformed and non-http URLs are 400s."""
        with patch("newsbias.api.routes.parse.parse_article") as mock_parse:
            response = await client.get("/api/parse", params={"url": url})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid URL format"
        mock_parse.assert_not_called()

    @pytest.mark.asyncio
    async def test_parse_failure(self, client: AsyncClient):
        """Extraction failures become 500s."""
        with patch(
            "newsbias.api.routes.parse.parse_article",
            side_effect=ArticleParseError(
                "Error parsing article: Failed to parse article content"
            ),
        ):
            response = await client.get(
                "/api/parse",
                params={"url": "https://example.com/a"},
            )

        assert response.status_code == 500
        assert response.json()["message"] == (
            "Error parsing article: Failed to parse article content"
        )

    @pytest.mark.asyncio
    async def test_generic_tier_applies(
        self,
        client: AsyncClient,
        settings,
        monkeypatch,
    ):
        """Parse is charged against the generic API budget."""
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX", 1)
        with patch(
            "newsbias.api.routes.parse.parse_article",
            return_value="text",
        ):
            first = await client.get("/api/parse", params={"url": "https://a.example"})
            second = await client.get("/api/parse", params={"url": "https://a.example"})

        assert first.status_code == 200
        assert second.status_code == 429
        assert second.json()["message"] == "Too many requests, please try again later"


# ── POST /api/start-analysis ────────────────────────────────


class TestStartAnalysisEndpoint:
    """Analysis submission."""

    @pytest.mark.asyncio
    async def test_submits_and_returns_task_id(self, client: AsyncClient, mock_queue):
        """A uuid task id is returned and used for the Celery task."""
        task, _ = mock_queue

        response = await client.post("/api/start-analysis", json={"content": "text"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["message"] == "Analysis task started"
        assert len(data["taskId"]) == 36
        assert task.apply_async.call_args.kwargs["task_id"] == data["taskId"]

    @pytest.mark.asyncio
    async def test_accepts_content_at_the_cap(self, client: AsyncClient, mock_queue):
        """Exactly 50,000 characters is accepted."""
        response = await client.post(
            "/api/start-analysis",
            json={"content": "a" * 50_000},
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_rejects_content_over_the_cap(self, client: AsyncClient, mock_queue):
        """50,001 characters is rejected before queueing."""
        task, _ = mock_queue

        response = await client.post(
            "/api/start-analysis",
            json={"content": "a" * 50_001},
        )

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Content is too long. Maximum 50,000 characters allowed."
        )
        task.apply_async.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"content": ""}, {"content": " \n "}])
    async def test_rejects_blank_content(self, client: AsyncClient, mock_queue, body):
        """Missing and blank content are 400s."""
        response = await client.post("/api/start-analysis", json=body)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_sixth_submission_is_rejected(self, client: AsyncClient, mock_queue):
        """The analysis tier admits five submissions per window."""
        task, _ = mock_queue
        for _ in range(5):
            ok = await client.post("/api/start-analysis", json={"content": "text"})
            assert ok.status_code == 200

        response = await client.post("/api/start-analysis", json={"content": "text"})

        assert response.status_code == 429
        assert response.json()["message"] == (
            "Analysis rate limit exceeded. Maximum 5 analyses per 10 minutes allowed."
        )
        assert task.apply_async.call_count == 5

    @pytest.mark.asyncio
    async def test_rate_limit_precedes_validation(
        self,
        client: AsyncClient,
        mock_queue,
        settings,
        monkeypatch,
    ):
        """A spent budget is reported even for an invalid body."""
        monkeypatch.setattr(settings, "RATE_LIMIT_ANALYSIS_MAX", 0)

        response = await client.post("/api/start-analysis", json={"content": ""})

        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_queue_failure(self, client: AsyncClient, mock_queue):
        """Broker failures become 500s."""
        task, _ = mock_queue
        task.apply_async.side_effect = ConnectionError("broker down")

        response = await client.post("/api/start-analysis", json={"content": "text"})

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to queue analysis: broker down"


# ── GET /api/check-analysis/{taskId} ────────────────────────


class TestCheckAnalysisEndpoint:
    """Polling."""

    @pytest.mark.asyncio
    async def test_invalid_task_id(self, client: AsyncClient, mock_queue):
        """Non-UUID identifiers are 400s."""
        response = await client.get("/api/check-analysis/not-a-uuid")

        assert response.status_code == 400
        assert response.json() == {
            "status": "error",
            "message": "Invalid task ID format",
        }

    @pytest.mark.asyncio
    async def test_unknown_task(self, client: AsyncClient, mock_queue):
        """An unknown id is ``not_found`` without result or error."""
        response = await client.get(f"/api/check-analysis/{_TASK_ID}")

        assert response.status_code == 200
        assert response.json() == {"status": "not_found"}

    @pytest.mark.asyncio
    async def test_uppercase_task_id_accepted(self, client: AsyncClient, mock_queue):
        """UUID validation is case-insensitive."""
        response = await client.get(f"/api/check-analysis/{_TASK_ID.upper()}")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_store_outage(self, client: AsyncClient, mock_queue, fake_redis):
        """An unreachable store is a 503."""
        fake_redis.fail = True

        response = await client.get(f"/api/check-analysis/{_TASK_ID}")

        assert response.status_code == 503
        assert response.json()["status"] == "error"

    @pytest.mark.asyncio
    async def test_failed_outcome(self, client: AsyncClient, mock_queue):
        """A failure record is reported with its error message."""
        TaskStore().save_failure(_TASK_ID, "Analysis failed after 3 attempts: boom")

        response = await client.get(f"/api/check-analysis/{_TASK_ID}")

        assert response.json() == {
            "status": "failed",
            "error": "Analysis failed after 3 attempts: boom",
        }


# ── End to end ──────────────────────────────────────────────


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()


def _completion_for(completion_payload):
    """Build a completion stub whose answer is keyed by its input."""

    def fake_completion(**kwargs):
        user_message = kwargs["messages"][1]["content"]
        payload = copy.deepcopy(completion_payload)
        payload["choices"][0]["message"]["content"] = _digest(user_message)
        return payload

    return fake_completion


def _run_worker(task_id: str, kwargs: dict) -> None:
    analyze_article_task.push_request(id=task_id, retries=0)
    try:
        analyze_article_task.run(**kwargs)
    finally:
        analyze_article_task.pop_request()


@pytest.mark.asyncio
async def test_submit_poll_complete_then_gone(
    client: AsyncClient,
    mock_queue,
    completion_payload,
):
    """Each task delivers its own content's analysis once, then is gone."""
    task, _ = mock_queue
    contents = [
        "Publisher: Reuters\nArticle: rates held steady",
        "Publisher: AP\nArticle: storm makes landfall",
    ]

    task_ids = []
    for content in contents:
        submitted = await client.post(
            "/api/start-analysis",
            json={"content": content},
        )
        task_ids.append(submitted.json()["taskId"])
    assert task_ids[0] != task_ids[1]

    for task_id in task_ids:
        queued = await client.get(f"/api/check-analysis/{task_id}")
        assert queued.json() == {"status": "queued"}

    # Run the worker body for each job that was enqueued, newest first.
    enqueued = [c.kwargs for c in task.apply_async.call_args_list]
    with patch(
        "newsbias.services.analyzer.litellm.completion",
        side_effect=_completion_for(completion_payload),
    ):
        for job in reversed(enqueued):
            _run_worker(job["task_id"], job["kwargs"])

    for task_id, content in zip(task_ids, contents):
        completed = await client.get(f"/api/check-analysis/{task_id}")
        body = completed.json()
        assert body["status"] == "completed"
        assert body["result"]["choices"][0]["message"]["content"] == _digest(
            content
        )

        gone = await client.get(f"/api/check-analysis/{task_id}")
        assert gone.json() == {"status": "not_found"}
