from __future__ import annotations

import asyncio
from datetime import date

from tainan_feed.render import render_snapshot
from tainan_feed.session import FeedSession, make_loader

from tests.conftest import DAY, make_transport, sample_routes


def loaded_session(cfg) -> FeedSession:
    session = FeedSession(loader=make_loader(cfg, transport=make_transport(sample_routes())), cfg=cfg, day=DAY)
    asyncio.run(session.load())
    return session


def test_render_snapshot_lists_every_item(fast_cfg):
    html = render_snapshot(loaded_session(fast_cfg), today=date(2025, 6, 5))

    for title in ("議長接見外賓", "市府公告防汛措施", "議會定期會開議"):
        assert title in html
    assert html.count('class="news-item" data-news-id=') == 3
    # Read-only page: no toggle forms or search box
    assert "/ui/toggle/" not in html
    assert 'id="search-input"' not in html


def test_render_snapshot_empty_day(fast_cfg):
    session = FeedSession(loader=make_loader(fast_cfg, transport=make_transport({})), cfg=fast_cfg, day=DAY)
    asyncio.run(session.load())

    html = render_snapshot(session, today=date(2025, 6, 5))

    assert "暫無可用資料" in html
