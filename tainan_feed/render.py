"""
Thin adapter from view models to HTML.

The web routes render through `templates.TemplateResponse`; the snapshot job
renders the same template to a string without a request.
"""
from __future__ import annotations

from datetime import date
from pathlib import Path

from fastapi.templating import Jinja2Templates

from tainan_feed.session import FeedSession, quick_dates
from tainan_feed.views import format_day_zh


TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

CATEGORY_TITLES = {
    "news": "最新消息",
    "announcements": "公告通知",
    "services": "便民服務",
}


def page_context(
    session: FeedSession,
    *,
    query: str | None = None,
    today: date | None = None,
    interactive: bool = True,
) -> dict:
    """Everything feed.html needs for one full render."""
    today = today or date.today()
    q = (query or "").strip()
    return {
        "feed": session.feed_view(),
        "search": session.search_view(q) if q else None,
        "query": q,
        "categories": session.category_views(),
        "category_titles": CATEGORY_TITLES,
        "quick_dates": quick_dates(today),
        "current_date_display": format_day_zh(session.day),
        "report": session.report,
        "interactive": interactive,
    }


def render_snapshot(session: FeedSession, *, today: date | None = None) -> str:
    """Standalone HTML for the session's current collection (no toggle forms)."""
    template = templates.get_template("feed.html")
    return template.render(**page_context(session, today=today, interactive=False))
