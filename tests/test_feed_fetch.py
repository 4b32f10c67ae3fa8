import asyncio

import httpx
import pytest

from tainan_feed.error_codes import FETCH_PERMANENT, FETCH_TIMEOUT, FETCH_TRANSIENT, PARSE_ERROR, RATE_LIMITED
from tainan_feed.feed_fetch import FeedDecodeError, FeedFetchError, fetch_json, fetch_json_with_retry


URL = "https://example.com/data/2025/2025-06-03.json"


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def _fetch(handler, **kwargs):
    async with client_for(handler) as client:
        return await fetch_json_with_retry(client, URL, **kwargs)


async def _fetch_raw(handler):
    async with client_for(handler) as client:
        return await fetch_json(client, URL)


# ---------- fetch_json ----------

def test_fetch_json_success():
    out = asyncio.run(_fetch_raw(lambda req: httpx.Response(200, json={"1": {}})))
    assert out == {"1": {}}


def test_fetch_json_non_200_raises():
    with pytest.raises(FeedFetchError) as info:
        asyncio.run(_fetch_raw(lambda req: httpx.Response(500)))
    assert info.value.status == 500


def test_fetch_json_bad_body_raises_decode_error():
    with pytest.raises(FeedDecodeError):
        asyncio.run(_fetch_raw(lambda req: httpx.Response(200, content=b"<html>not json</html>")))


# ---------- fetch_json_with_retry ----------

def test_retry_404_is_permanent_no_retry():
    calls = {"n": 0}

    def handler(req):
        calls["n"] += 1
        return httpx.Response(404)

    result = asyncio.run(_fetch(handler, attempts=3, base_sleep_s=0.0))

    assert result.ok is False
    assert result.error_code == FETCH_PERMANENT
    assert calls["n"] == 1


def test_retry_429_returns_rate_limited():
    calls = {"n": 0}

    def handler(req):
        calls["n"] += 1
        return httpx.Response(429)

    result = asyncio.run(_fetch(handler, attempts=3, base_sleep_s=0.0))

    assert result.error_code == RATE_LIMITED
    assert calls["n"] == 1  # No retries for 429


def test_retry_decode_error_not_retried():
    calls = {"n": 0}

    def handler(req):
        calls["n"] += 1
        return httpx.Response(200, content=b"{broken")

    result = asyncio.run(_fetch(handler, attempts=3, base_sleep_s=0.0))

    assert result.ok is False
    assert result.error_code == PARSE_ERROR
    assert calls["n"] == 1


def test_retry_backoff_then_success(monkeypatch):
    calls = {"n": 0}
    sleeps: list[float] = []

    def handler(req):
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"title": "ok"})

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    result = asyncio.run(_fetch(handler, attempts=3, base_sleep_s=0.5))

    assert result.ok is True
    assert result.content == {"title": "ok"}
    assert sleeps == [0.5, 1.0]


def test_retry_timeout_exhausted(monkeypatch):
    calls = {"n": 0}

    def handler(req):
        calls["n"] += 1
        raise httpx.ReadTimeout("timed out", request=req)

    async def fake_sleep(seconds):
        return None

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    result = asyncio.run(_fetch(handler, attempts=2, base_sleep_s=0.5))

    assert result.ok is False
    assert result.error_code == FETCH_TIMEOUT
    assert calls["n"] == 2


def test_retry_connection_error_is_transient():
    def handler(req):
        raise httpx.ConnectError("connection refused", request=req)

    result = asyncio.run(_fetch(handler, attempts=1))

    assert result.ok is False
    assert result.error_code == FETCH_TRANSIENT
    assert "transport error" in result.error_message


def test_invalid_url_is_permanent_no_retry():
    calls = {"n": 0}

    def handler(req):
        calls["n"] += 1
        return httpx.Response(200, json={})

    async def go():
        async with client_for(handler) as client:
            return await fetch_json_with_retry(client, "https://example.com/data/2025_bad\x00id.json", attempts=3)

    result = asyncio.run(go())

    assert result.ok is False
    assert result.error_code == FETCH_PERMANENT
    assert calls["n"] == 0
