"""
NewsBias API - Python client example.

Demonstrates:
  1. Search recent news for a query.
  2. Extract the text of the first article.
  3. Submit the article for bias analysis.
  4. Poll the task every 5 seconds until it completes.

Requirements:
  pip install httpx

Usage:
  python examples/python/client.py "climate summit"
"""

from __future__ import annotations

import sys
import time
from typing import Any

import httpx

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

API_BASE = "http://localhost:8000/api"
POLL_INTERVAL = 5  # seconds between status checks
POLL_TIMEOUT = 300  # give up after N seconds


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_for_analysis(article: dict[str, Any], content: str | None) -> str:
    """Render article metadata and body into the text submitted for analysis."""
    return (
        f"Publisher: {article.get('publisher') or 'Unknown'}\n"
        f"Date: {article.get('publishedAt') or 'Unknown'}\n"
        f"Author: {article.get('author') or 'Unknown'}\n"
        f"Title: {article.get('title') or 'Untitled'}\n"
        f"URL: {article.get('url') or ''}\n"
        f"Article: {content or 'No content available'}"
    )


def search(client: httpx.Client, query: str) -> list[dict[str, Any]]:
    """POST /search and return the normalised articles.

    Raises:
        httpx.HTTPStatusError: On non-2xx responses.
    """
    resp = client.post("/search", json={"query": query})
    resp.raise_for_status()
    return resp.json()["articles"]


def parse(client: httpx.Client, url: str) -> str:
    """GET /parse and return the article text."""
    resp = client.get("/parse", params={"url": url})
    resp.raise_for_status()
    return resp.json()


def start_analysis(client: httpx.Client, content: str) -> str:
    """POST /start-analysis and return the task id."""
    resp = client.post("/start-analysis", json={"content": content})
    resp.raise_for_status()
    return resp.json()["taskId"]


def poll_analysis(client: httpx.Client, task_id: str) -> dict[str, Any]:
    """Poll GET /check-analysis/{task_id} until a terminal status.

    A ``completed`` or ``failed`` answer is delivered only once, so
    the returned dict must be kept by the caller.

    Raises:
        TimeoutError: If the task does not finish within POLL_TIMEOUT.
        LookupError: If the task is unknown or has expired.
    """
    deadline = time.monotonic() + POLL_TIMEOUT
    while time.monotonic() < deadline:
        resp = client.get(f"/check-analysis/{task_id}")
        resp.raise_for_status()
        data = resp.json()
        status = data.get("status", "")
        print(f"  [{task_id[:8]}] status={status}")
        if status in ("completed", "failed"):
            return data
        if status == "not_found":
            raise LookupError(f"Task {task_id} is unknown or expired")
        time.sleep(POLL_INTERVAL)
    raise TimeoutError(f"Task {task_id} did not finish within {POLL_TIMEOUT}s")


# ---------------------------------------------------------------------------
# Example
# ---------------------------------------------------------------------------


def analyse_first_article(query: str) -> None:
    """Search, extract and analyse the newest article for *query*."""
    with httpx.Client(base_url=API_BASE, timeout=30) as client:
        articles = search(client, query)
        if not articles:
            print("No results found. Please try another search.")
            return

        article = articles[0]
        print(f"Analysing: {article['title']} ({article['publisher']})")
        content = format_for_analysis(article, parse(client, article["url"]))

        task_id = start_analysis(client, content)
        print(f"Submitted: taskId={task_id}")
        final = poll_analysis(client, task_id)

    if final["status"] == "failed":
        print(f"Analysis failed: {final.get('error')}")
        return
    choices = (final.get("result") or {}).get("choices") or []
    print(choices[0]["message"]["content"] if choices else "(empty analysis)")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    analyse_first_article(sys.argv[1] if len(sys.argv) > 1 else "climate")
