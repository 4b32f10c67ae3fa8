# tainan_feed/session.py
"""
Per-viewer feed state: the selected date, the loaded collection, and which
items are expanded. One FeedSession per browser session; nothing global.
"""
from __future__ import annotations

import time
import uuid
from datetime import date, timedelta
from enum import Enum
from typing import Awaitable, Callable

import httpx

from tainan_feed.aggregate import AggregateResult, aggregate_day
from tainan_feed.config import FeedConfig
from tainan_feed.feed_fetch import make_client
from tainan_feed.logging_utils import log_event
from tainan_feed.schemas import FetchReport, NewsItem
from tainan_feed.search import search_items
from tainan_feed.views import build_category_views, build_feed_view, build_search_view


Loader = Callable[[date], Awaitable[AggregateResult]]


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


def make_loader(cfg: FeedConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> Loader:
    """Loader that opens one client per aggregation."""

    async def load(day: date) -> AggregateResult:
        async with make_client(cfg, transport=transport) as client:
            return await aggregate_day(day, client=client, cfg=cfg)

    return load


def quick_dates(today: date) -> list[dict]:
    """Shortcut buttons: today, yesterday, two days ago."""
    return [
        {"id": "quick-today", "label": "今天", "day": today.isoformat()},
        {"id": "quick-yesterday", "label": "昨天", "day": (today - timedelta(days=1)).isoformat()},
        {"id": "quick-day-before", "label": "前天", "day": (today - timedelta(days=2)).isoformat()},
    ]


class FeedSession:
    def __init__(
        self,
        *,
        loader: Loader,
        cfg: FeedConfig | None = None,
        day: date | None = None,
        session_id: str | None = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.cfg = cfg or FeedConfig()
        self.day: date = day or date.today()
        self.items: list[NewsItem] = []
        self.expanded: set[str] = set()
        self.report: FetchReport | None = None
        self.state = SessionState.IDLE
        self._loader = loader
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def set_date(self, day: date) -> None:
        """
        Select a new date without fetching.
        Drops loaded items, expansion state and any in-flight result.
        """
        self._generation += 1
        self.day = day
        self.items = []
        self.report = None
        self.expanded.clear()
        self.state = SessionState.IDLE

    async def load(self) -> bool:
        """Fetch the current date. Returns False if a newer request superseded this one."""
        self._generation += 1
        generation = self._generation
        day = self.day
        self.state = SessionState.LOADING

        try:
            result = await self._loader(day)
        except Exception:
            if generation == self._generation:
                self.state = SessionState.IDLE
            raise

        if generation != self._generation:
            log_event(
                "stale_result_discarded",
                session_id=self.session_id,
                day=day.isoformat(),
                generation=generation,
                current_generation=self._generation,
            )
            return False

        # Swap in one step; the previous collection stays intact until here
        self.items = result.items
        self.report = result.report
        self.state = SessionState.READY
        return True

    async def change_date(self, new_date: date) -> bool:
        """loading -> fetch -> replace -> ready. Expansion state is cleared up front."""
        previous = self.day
        self.day = new_date
        self.expanded.clear()
        applied = await self.load()
        if applied:
            log_event(
                "date_changed",
                session_id=self.session_id,
                previous=previous.isoformat(),
                day=new_date.isoformat(),
                items=len(self.items),
            )
        return applied

    def toggle_expansion(self, key: str) -> bool:
        """Flip one item's expanded flag. Returns the new state."""
        if key in self.expanded:
            self.expanded.discard(key)
            return False
        self.expanded.add(key)
        return True

    def search(self, query: str | None) -> list[NewsItem]:
        # Always the full collection, not the displayed slice
        return search_items(self.items, query)

    def feed_view(self, *, limit: int | None = None) -> dict:
        return build_feed_view(
            self.items,
            day=self.day,
            expanded=self.expanded,
            limit=limit or self.cfg.display_limit,
            truncate_at=self.cfg.truncate_at,
            loading=self.state is SessionState.LOADING,
        )

    def search_view(self, query: str) -> dict:
        return build_search_view(
            self.search(query),
            query=query,
            expanded=self.expanded,
            truncate_at=self.cfg.truncate_at,
        )

    def category_views(self) -> dict[str, list[dict]]:
        return build_category_views(self.items, truncate_at=self.cfg.truncate_at)


class SessionStore:
    """
    In-memory sessions keyed by cookie value.

    Sessions idle longer than cfg.session_ttl_s are dropped, and at most
    cfg.max_sessions are held (least recently used goes first).
    """

    def __init__(
        self,
        *,
        loader_factory: Callable[[], Loader],
        cfg: FeedConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        # Insertion order doubles as LRU order
        self._sessions: dict[str, FeedSession] = {}
        self._last_used: dict[str, float] = {}
        self._loader_factory = loader_factory
        self._clock = clock
        self.cfg = cfg

    def loader(self) -> Loader:
        return self._loader_factory()

    def _touch(self, session_id: str) -> None:
        session = self._sessions.pop(session_id)
        self._sessions[session_id] = session
        self._last_used[session_id] = self._clock()

    def _drop(self, session_id: str, reason: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_used.pop(session_id, None)
        log_event("session_evicted", session_id=session_id, reason=reason)

    def evict(self) -> None:
        """Drop expired sessions, then the oldest ones over the cap."""
        cutoff = self._clock() - self.cfg.session_ttl_s
        for session_id in [sid for sid, ts in self._last_used.items() if ts < cutoff]:
            self._drop(session_id, "expired")
        while len(self._sessions) > self.cfg.max_sessions:
            self._drop(next(iter(self._sessions)), "capacity")

    def get(self, session_id: str | None) -> FeedSession | None:
        if not session_id or session_id not in self._sessions:
            return None
        if self._last_used[session_id] < self._clock() - self.cfg.session_ttl_s:
            self._drop(session_id, "expired")
            return None
        self._touch(session_id)
        return self._sessions[session_id]

    def create(self, *, day: date | None = None) -> FeedSession:
        session = FeedSession(loader=self.loader(), cfg=self.cfg, day=day)
        self._sessions[session.session_id] = session
        self._last_used[session.session_id] = self._clock()
        self.evict()
        return session

    def get_or_create(self, session_id: str | None, *, day: date | None = None) -> FeedSession:
        return self.get(session_id) or self.create(day=day)

    def clear(self) -> None:
        self._sessions.clear()
        self._last_used.clear()

    def __len__(self) -> int:
        return len(self._sessions)
