# tainan_feed/search.py
"""
Keyword search over a loaded collection.
Pure functions, no side effects, no network access.
"""
from __future__ import annotations

import re

from markupsafe import Markup, escape

from tainan_feed.schemas import NewsItem


# Fields matched by search, in display order
SEARCH_FIELDS = ("title", "content", "department", "tags")


def matches(item: NewsItem, term: str) -> bool:
    """True if any searchable field contains `term` (already lowercased)."""
    for field in SEARCH_FIELDS:
        value = getattr(item, field)
        if value and term in value.lower():
            return True
    return False


def search_items(items: list[NewsItem], query: str | None) -> list[NewsItem]:
    """
    Case-insensitive substring search.

    - blank query -> every item
    - order preserved relative to `items`
    """
    if not query or not query.strip():
        return list(items)

    term = query.strip().lower()
    return [item for item in items if matches(item, term)]


def highlight(text: str | None, query: str | None) -> Markup:
    """
    Wrap case-insensitive matches of `query` in a highlight span.
    Everything else is HTML-escaped; the query is matched literally.
    """
    if not text:
        return Markup("")
    if not query or not query.strip():
        return escape(text)

    pattern = re.compile(re.escape(query.strip()), re.IGNORECASE)
    out: list[str] = []
    pos = 0
    for m in pattern.finditer(text):
        out.append(escape(text[pos:m.start()]))
        out.append(Markup('<span class="search-highlight">%s</span>') % m.group(0))
        pos = m.end()
    out.append(escape(text[pos:]))
    return Markup("").join(out)
