# tainan_feed/sources.py
"""Feed sources and per-date URL derivation. Pure functions, no I/O."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from tainan_feed.config import FeedConfig


class Source(str, Enum):
    COUNCIL = "council"
    GOVERNMENT = "government"


# Merge order: council items come first before sorting
SOURCES = (Source.COUNCIL, Source.GOVERNMENT)


@dataclass(frozen=True)
class SourceUrls:
    index_url: str
    detail_base: str

    def detail_url(self, item_id: str) -> str:
        return detail_url(self.detail_base, item_id)


@dataclass(frozen=True)
class FeedUrls:
    day: date
    by_source: dict[Source, SourceUrls]

    def __getitem__(self, source: Source) -> SourceUrls:
        return self.by_source[source]


def base_url_for(source: Source, cfg: FeedConfig) -> str:
    if source is Source.COUNCIL:
        return cfg.council_base_url
    return cfg.government_base_url


def feed_urls(day: date, cfg: FeedConfig | None = None) -> FeedUrls:
    """
    Derive the index URL and detail base path for each source.

    - index:  {base}/data/{YYYY}/{YYYY-MM-DD}.json
    - detail: {base}/data/{YYYY}/{MM}/{YYYY-MM-DD}_   (+ id + ".json")
    """
    cfg = cfg or FeedConfig()
    iso = day.isoformat()
    year = f"{day.year:04d}"
    month = f"{day.month:02d}"

    by_source = {}
    for source in SOURCES:
        base = base_url_for(source, cfg)
        by_source[source] = SourceUrls(
            index_url=f"{base}/data/{year}/{iso}.json",
            detail_base=f"{base}/data/{year}/{month}/{iso}_",
        )
    return FeedUrls(day=day, by_source=by_source)


def detail_url(detail_base: str, item_id: str) -> str:
    return f"{detail_base}{item_id}.json"
