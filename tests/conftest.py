# tests/conftest.py
from __future__ import annotations

import asyncio
from datetime import date

import httpx
import pytest

from tainan_feed.aggregate import aggregate_day
from tainan_feed.config import FeedConfig
from tainan_feed.feed_fetch import make_client


DAY = date(2025, 6, 3)

COUNCIL_INDEX = "https://kiang.github.io/www.tncc.gov.tw/data/2025/2025-06-03.json"
GOV_INDEX = "https://kiang.github.io/www.tainan.gov.tw/data/2025/2025-06-03.json"
COUNCIL_DETAIL = "https://kiang.github.io/www.tncc.gov.tw/data/2025/06/2025-06-03_{}.json"
GOV_DETAIL = "https://kiang.github.io/www.tainan.gov.tw/data/2025/06/2025-06-03_{}.json"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for var in (
        "FEED_COUNCIL_BASE_URL", "FEED_GOVERNMENT_BASE_URL", "FEED_TIMEOUT_S",
        "FEED_RETRY_ATTEMPTS", "FEED_RETRY_BASE_SLEEP_S", "FEED_TRUNCATE_AT", "FEED_DISPLAY_LIMIT",
        "FEED_SESSION_TTL_S", "FEED_MAX_SESSIONS",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fast_cfg() -> FeedConfig:
    """Default config without backoff sleeps."""
    return FeedConfig(retry_base_sleep_s=0.0)


def make_transport(routes: dict, *, calls: list[str] | None = None) -> httpx.MockTransport:
    """
    Fake feed server.

    routes maps URL -> one of:
      - dict/list (served as JSON, 200)
      - int (bare status code)
      - bytes (raw 200 body)
      - Exception (raised as a transport error)
    Unknown URLs return 404.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        if url not in routes:
            return httpx.Response(404)
        value = routes[url]
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            return httpx.Response(value)
        if isinstance(value, bytes):
            return httpx.Response(200, content=value)
        return httpx.Response(200, json=value)

    return httpx.MockTransport(handler)


def run_aggregate(routes: dict, *, day: date = DAY, cfg: FeedConfig | None = None, calls: list[str] | None = None):
    cfg = cfg or FeedConfig(retry_base_sleep_s=0.0)

    async def go():
        async with make_client(cfg, transport=make_transport(routes, calls=calls)) as client:
            return await aggregate_day(day, client=client, cfg=cfg)

    return asyncio.run(go())


def sample_routes() -> dict:
    """Two council items, one government item for DAY."""
    return {
        COUNCIL_INDEX: {"101": {}, "102": {}},
        GOV_INDEX: {"9001": {"title": "stub"}},
        COUNCIL_DETAIL.format("101"): {
            "title": "議會定期會開議",
            "content": "第四屆第五次定期會今日開議，" + "議員質詢市政。" * 40,
            "published": "2025-06-03 09:00:00",
            "department": "議事組",
            "url": "https://www.tncc.gov.tw/news/101",
        },
        COUNCIL_DETAIL.format("102"): {
            "title": "議長接見外賓",
            "content": "議長今日接見日本訪問團。",
            "published": "2025-06-03 15:30:00",
        },
        GOV_DETAIL.format("9001"): {
            "title": "市府公告防汛措施",
            "content": "市府提醒市民注意豪雨，並公告防汛服務專線。",
            "published": "2025-06-03 12:00:00",
            "department": "水利局",
            "tags": ["防汛", "豪雨"],
        },
    }
