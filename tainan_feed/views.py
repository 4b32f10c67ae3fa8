"""
View/presentation helpers for building display objects.

This module turns NewsItems plus expansion state into plain view models for
templates. No HTML is written here except highlight spans (see search.highlight),
so everything can be tested without a UI surface.
"""
from __future__ import annotations

from datetime import date, datetime

from tainan_feed.schemas import NewsItem, parse_published
from tainan_feed.search import highlight
from tainan_feed.sources import Source


DEFAULT_TRUNCATE_AT = 150
ELLIPSIS = "..."
UNTITLED = "無標題"

EXPAND_LABEL = "展開全文"
COLLAPSE_LABEL = "收合內容"
LOADING_MESSAGE = "載入資料中..."
NO_DATA_HINT = "請嘗試選擇其他日期，或稍後再試。"
NO_MATCH_HINT = "請嘗試使用其他關鍵字進行搜尋。"

SOURCE_BADGES = {
    Source.COUNCIL: {"label": "🏛️ 議會", "css": "badge badge--council"},
    Source.GOVERNMENT: {"label": "🏢 市政府", "css": "badge badge--government"},
}

# Content keywords per category panel, matched as plain substrings
CATEGORY_KEYWORDS = {
    "news": ("新聞", "消息"),
    "announcements": ("公告", "通知", "會議"),
    "services": ("服務", "申請", "辦理"),
}
CATEGORY_LIMIT = 5


def truncate_content(content: str | None, max_length: int = DEFAULT_TRUNCATE_AT) -> str:
    if not content:
        return ""
    if len(content) <= max_length:
        return content
    return content[:max_length] + ELLIPSIS


def format_day_zh(day: date | datetime) -> str:
    """2025-06-03 -> 2025年6月3日"""
    return f"{day.year}年{day.month}月{day.day}日"


def format_published(value: str | None) -> str:
    """Long zh-TW date for display; unparseable values are shown as served."""
    dt = parse_published(value)
    if dt is None:
        return value or ""
    return format_day_zh(dt)


def source_badge(source: Source) -> dict:
    return SOURCE_BADGES[source]


def build_item_view(
    item: NewsItem,
    *,
    expanded: bool,
    truncate_at: int = DEFAULT_TRUNCATE_AT,
    query: str | None = None,
) -> dict:
    """
    Display object for one item.

    The expand/collapse affordance only exists when content is longer than
    the truncation budget.
    """
    content = item.content or ""
    expandable = len(content) > truncate_at
    is_expanded = expanded and expandable
    body = content if is_expanded else truncate_content(content, truncate_at)

    return {
        "key": item.key,
        "id": item.id,
        "source": item.source.value,
        "badge": source_badge(item.source),
        "title": item.title or UNTITLED,
        "title_html": highlight(item.title or UNTITLED, query),
        "body": body,
        "body_html": highlight(body, query),
        "expandable": expandable,
        "expanded": is_expanded,
        "toggle_label": (COLLAPSE_LABEL if is_expanded else EXPAND_LABEL) if expandable else None,
        "department": item.department,
        "tags": item.tags,
        "url": item.url,
        "published": item.published,
        "published_display": format_published(item.published),
    }


def build_item_views(
    items: list[NewsItem],
    *,
    expanded: set[str],
    truncate_at: int = DEFAULT_TRUNCATE_AT,
    query: str | None = None,
) -> list[dict]:
    return [
        build_item_view(it, expanded=it.key in expanded, truncate_at=truncate_at, query=query)
        for it in items
    ]


def build_feed_view(
    items: list[NewsItem],
    *,
    day: date,
    expanded: set[str],
    limit: int = 20,
    truncate_at: int = DEFAULT_TRUNCATE_AT,
    loading: bool = False,
) -> dict:
    """Build the main feed list for a day.

    Returns:
        {
            "day": "2025-06-03", "day_display": "2025年6月3日",
            "loading": False, "empty": False, "empty_message": None,
            "total": 42, "count": 20, "items": [...]
        }
    """
    shown = items[:limit]
    day_display = format_day_zh(day)
    empty = not shown and not loading

    return {
        "day": day.isoformat(),
        "day_display": day_display,
        "loading": loading,
        "loading_message": LOADING_MESSAGE if loading else None,
        "empty": empty,
        "empty_message": f"{day_display} 暫無可用資料" if empty else None,
        "empty_hint": NO_DATA_HINT if empty else None,
        "total": len(items),
        "count": len(shown),
        "items": [] if loading else build_item_views(shown, expanded=expanded, truncate_at=truncate_at),
    }


def build_search_view(
    results: list[NewsItem],
    *,
    query: str,
    expanded: set[str],
    truncate_at: int = DEFAULT_TRUNCATE_AT,
) -> dict:
    """Search results area. Every match is shown (no display limit)."""
    q = query.strip()
    empty = not results
    return {
        "query": q,
        "count": len(results),
        "empty": empty,
        "message": f"找不到包含「{q}」的相關資訊" if empty else f"找到 {len(results)} 筆包含「{q}」的資訊：",
        "hint": NO_MATCH_HINT if empty else None,
        "items": build_item_views(results, expanded=expanded, truncate_at=truncate_at, query=q),
    }


def categorize_items(items: list[NewsItem], *, limit: int = CATEGORY_LIMIT) -> dict[str, list[NewsItem]]:
    """Split items into keyword panels by content. An item may land in several panels."""
    panels: dict[str, list[NewsItem]] = {}
    for name, keywords in CATEGORY_KEYWORDS.items():
        hits = [it for it in items if it.content and any(k in it.content for k in keywords)]
        panels[name] = hits[:limit]
    return panels


def build_category_views(
    items: list[NewsItem],
    *,
    truncate_at: int = DEFAULT_TRUNCATE_AT,
) -> dict[str, list[dict]]:
    # Panels always show the truncated preview
    return {
        name: build_item_views(panel, expanded=set(), truncate_at=truncate_at)
        for name, panel in categorize_items(items).items()
    }
