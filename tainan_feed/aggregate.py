# tainan_feed/aggregate.py
"""
Fetch both feeds for one day and merge them into a single collection.

Fan-out: both index documents concurrently, then every detail document of
every index concurrently. Nothing here fails as a whole: a broken index
degrades that source to empty, a broken detail drops that item.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from tainan_feed.config import FeedConfig
from tainan_feed.error_codes import (
    DETAIL_UNAVAILABLE,
    INDEX_UNAVAILABLE,
    NO_DATA_FOR_DATE,
    PARSE_ERROR,
    VALIDATION_ERROR,
)
from tainan_feed.feed_fetch import fetch_json_with_retry
from tainan_feed.logging_utils import log_event
from tainan_feed.schemas import FetchReport, NewsItem, SourceReport
from tainan_feed.sources import SOURCES, Source, SourceUrls, feed_urls


@dataclass
class AggregateResult:
    items: list[NewsItem]
    report: FetchReport


def sort_key(item: NewsItem) -> tuple[bool, float]:
    """Newest first; missing or unparseable `published` sorts after everything else."""
    published_at = item.published_at
    if published_at is None:
        return (True, 0.0)
    return (False, -published_at.timestamp())


def merge_items(*groups: list[NewsItem]) -> list[NewsItem]:
    """
    Concatenate per-source groups and sort descending by published time.
    Stable: equal timestamps keep concatenation order.
    """
    merged: list[NewsItem] = []
    for group in groups:
        merged.extend(group)
    return sorted(merged, key=sort_key)


def _count_failure(report: SourceReport, code: str) -> None:
    report.failures_by_code[code] = report.failures_by_code.get(code, 0) + 1


async def fetch_index(
    client: httpx.AsyncClient,
    source: Source,
    urls: SourceUrls,
    *,
    cfg: FeedConfig,
    report: SourceReport,
    day: date,
) -> dict[str, Any]:
    """Fetch one source's index. Returns {} on any failure."""
    result = await fetch_json_with_retry(
        client,
        urls.index_url,
        attempts=cfg.retry_attempts,
        base_sleep_s=cfg.retry_base_sleep_s,
    )

    code = result.error_code
    message = result.error_message
    if result.ok and not isinstance(result.content, dict):
        code = PARSE_ERROR
        message = f"index is {type(result.content).__name__}, expected object"

    if code is not None:
        report.index_ok = False
        report.index_error_code = code
        _count_failure(report, code)
        log_event(
            "index_unavailable",
            level=logging.WARNING,
            category=INDEX_UNAVAILABLE,
            source=source.value,
            day=day.isoformat(),
            url=urls.index_url,
            error_code=code,
            error_message=message,
        )
        return {}

    report.index_ok = True
    log_event("index_fetch_ok", source=source.value, day=day.isoformat(), ids=len(result.content))
    return result.content


async def fetch_detail(
    client: httpx.AsyncClient,
    source: Source,
    item_id: str,
    urls: SourceUrls,
    *,
    cfg: FeedConfig,
    report: SourceReport,
) -> NewsItem | None:
    """Fetch one detail document and tag it with source + id. None if it can't be used."""
    url = urls.detail_url(item_id)
    result = await fetch_json_with_retry(
        client,
        url,
        attempts=cfg.retry_attempts,
        base_sleep_s=cfg.retry_base_sleep_s,
    )

    code = result.error_code
    message = result.error_message
    item = None
    if result.ok:
        if isinstance(result.content, dict):
            try:
                item = NewsItem(**{**result.content, "source": source, "id": item_id})
            except ValidationError as exc:
                code, message = VALIDATION_ERROR, f"{exc.error_count()} validation error(s)"
        else:
            code, message = PARSE_ERROR, f"detail is {type(result.content).__name__}, expected object"

    if item is None:
        report.detail_failed += 1
        _count_failure(report, code)
        log_event(
            "detail_unavailable",
            level=logging.WARNING,
            category=DETAIL_UNAVAILABLE,
            source=source.value,
            item_id=item_id,
            url=url,
            error_code=code,
            error_message=message,
        )
        return None

    report.detail_ok += 1
    return item


async def fetch_source(
    client: httpx.AsyncClient,
    source: Source,
    urls: SourceUrls,
    index: dict[str, Any],
    *,
    cfg: FeedConfig,
    report: SourceReport,
) -> list[NewsItem]:
    ids = [str(k) for k in index.keys()]
    report.detail_requested = len(ids)
    results = await asyncio.gather(
        *(fetch_detail(client, source, item_id, urls, cfg=cfg, report=report) for item_id in ids)
    )
    # Keep index order among survivors
    return [item for item in results if item is not None]


async def aggregate_day(day: date, *, client: httpx.AsyncClient, cfg: FeedConfig | None = None) -> AggregateResult:
    """
    Build the merged, sorted collection for one day.

    Always returns; the report carries per-source failure counts.
    """
    cfg = cfg or FeedConfig()
    urls = feed_urls(day, cfg)
    report = FetchReport(day=day, sources=[SourceReport(source=s) for s in SOURCES])

    indexes = await asyncio.gather(
        *(
            fetch_index(client, s, urls[s], cfg=cfg, report=report.for_source(s), day=day)
            for s in SOURCES
        )
    )

    groups = await asyncio.gather(
        *(
            fetch_source(client, s, urls[s], index, cfg=cfg, report=report.for_source(s))
            for s, index in zip(SOURCES, indexes)
        )
    )

    items = merge_items(*groups)

    log_event(
        "aggregate_finished",
        day=day.isoformat(),
        items=len(items),
        failures=report.total_failures,
        status=NO_DATA_FOR_DATE if not items else "ok",
    )
    return AggregateResult(items=items, report=report)
