# Enable type hint syntax from future Python versions (allows using | for union types)
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import httpx

from tainan_feed.config import FeedConfig
from tainan_feed.error_codes import (
    FETCH_PERMANENT,
    FETCH_TIMEOUT,
    FETCH_TRANSIENT,
    PARSE_ERROR,
    RATE_LIMITED,
)


USER_AGENT = "tainan-news-feed/0.1"


class FeedFetchError(Exception):
    """Raised when a feed document cannot be fetched (used internally by fetch_json)."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        timeout: bool = False,
        permanent: bool = False,
    ):
        super().__init__(message)
        self.status = status
        self.timeout = timeout
        self.permanent = permanent


class FeedDecodeError(ValueError):
    """Raised when a response body is not valid JSON (maps to PARSE_ERROR)."""


@dataclass
class FetchResult:
    ok: bool
    content: Any = None
    error_code: str | None = None
    error_message: str | None = None


def make_client(cfg: FeedConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Shared client for one aggregation. Tests pass an httpx.MockTransport."""
    return httpx.AsyncClient(
        timeout=cfg.timeout_s,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    )


# Fetch and decode one JSON document - this is the base function without retries
async def fetch_json(client: httpx.AsyncClient, url: str) -> Any:
    """Fetch a JSON document and return the decoded body."""
    try:
        resp = await client.get(url)
    except httpx.TimeoutException as exc:
        raise FeedFetchError("FEED_FETCH_FAIL: timeout", timeout=True) from exc
    except httpx.InvalidURL as exc:
        # URL can never be requested (e.g. control characters in an item id)
        raise FeedFetchError(f"FEED_FETCH_FAIL: invalid URL: {exc}", permanent=True) from exc
    except httpx.HTTPError as exc:
        raise FeedFetchError(f"FEED_FETCH_FAIL: transport error: {exc}") from exc

    if resp.status_code != 200:
        raise FeedFetchError(f"FEED_FETCH_FAIL: HTTP {resp.status_code}", status=resp.status_code)

    try:
        return json.loads(resp.content)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FeedDecodeError(f"FEED_DECODE_FAIL: {exc}") from exc


def classify_fetch_error(exc: FeedFetchError) -> tuple[str, bool]:
    """Map a fetch failure to (error_code, retryable)."""
    if exc.permanent:
        return FETCH_PERMANENT, False
    if exc.timeout:
        return FETCH_TIMEOUT, True
    if exc.status == 429:
        return RATE_LIMITED, False
    if exc.status is not None and 400 <= exc.status < 500:
        return FETCH_PERMANENT, False
    # 5xx, other statuses and connection errors
    return FETCH_TRANSIENT, True


# Fetch JSON with retry and exponential backoff for transient failures
async def fetch_json_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    attempts: int = 3,
    base_sleep_s: float = 0.5,
) -> FetchResult:
    """Fetch JSON with retry/backoff. Never raises for fetch or decode failures."""
    last_code = FETCH_TRANSIENT
    last_msg: str | None = None

    for i in range(attempts):
        try:
            content = await fetch_json(client, url)
            return FetchResult(ok=True, content=content)

        except FeedDecodeError as exc:
            # A bad body won't get better on retry
            return FetchResult(ok=False, error_code=PARSE_ERROR, error_message=str(exc))

        except FeedFetchError as exc:
            last_msg = str(exc)
            last_code, retryable = classify_fetch_error(exc)

            if not retryable or i >= attempts - 1:
                return FetchResult(ok=False, error_code=last_code, error_message=last_msg)

            await asyncio.sleep(base_sleep_s * (2 ** i))

    # Fallback (shouldn't reach here)
    return FetchResult(ok=False, error_code=last_code, error_message=last_msg or "unknown")
