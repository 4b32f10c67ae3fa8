from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator

from tainan_feed.sources import Source


def parse_published(value: str | None) -> datetime | None:
    """
    Parse a `published` value into an aware datetime.

    - ISO date or datetime ("2025-01-02", "2025-01-02 10:30:00", "...T10:30:00+08:00")
    - naive values are taken as UTC so every parsed value is comparable
    - anything else -> None
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        try:
            dt = datetime.combine(date.fromisoformat(text[:10]), datetime.min.time())
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class NewsItem(BaseModel):
    id: str
    source: Source
    title: str | None = None
    content: str | None = None
    published: str | None = None
    department: str | None = None
    tags: str | None = None
    url: str | None = None

    @field_validator("title", "content", "department", "url", "published", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str | None:
        if v is None:
            return None
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _join_tags(cls, v: Any) -> str | None:
        if v is None:
            return None
        if isinstance(v, (list, tuple)):
            joined = ", ".join(str(t) for t in v if t)
            return joined or None
        return v

    @computed_field
    @property
    def key(self) -> str:
        """Composite identity (source, id); ids alone repeat across sources."""
        return f"{self.source.value}-{self.id}"

    @property
    def published_at(self) -> datetime | None:
        return parse_published(self.published)


class SourceReport(BaseModel):
    source: Source
    index_ok: bool = False
    index_error_code: str | None = None
    detail_requested: int = 0
    detail_ok: int = 0
    detail_failed: int = 0
    failures_by_code: dict[str, int] = Field(default_factory=dict)


class FetchReport(BaseModel):
    day: date
    sources: list[SourceReport] = Field(default_factory=list)

    @computed_field
    @property
    def total_items(self) -> int:
        return sum(s.detail_ok for s in self.sources)

    @computed_field
    @property
    def total_failures(self) -> int:
        failed_indexes = sum(1 for s in self.sources if not s.index_ok)
        return failed_indexes + sum(s.detail_failed for s in self.sources)

    @computed_field
    @property
    def no_data(self) -> bool:
        return self.total_items == 0

    def for_source(self, source: Source) -> SourceReport:
        for s in self.sources:
            if s.source is source:
                return s
        raise KeyError(source)
