from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

from tainan_feed.config import FeedConfig
from tainan_feed.logging_utils import log_event
from tainan_feed.render import render_snapshot
from tainan_feed.session import FeedSession, make_loader


DEFAULT_OUT_DIR = "artifacts"


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Fetch one day of council + government news and write an HTML snapshot.")
    p.add_argument("--date", default=None, help="YYYY-MM-DD (default: today)")
    p.add_argument("--out", default=None, help="Output HTML path (default: artifacts/feed-<date>.html)")
    args = p.parse_args(argv)

    # Validate date
    try:
        day = date.fromisoformat(args.date) if args.date else date.today()
    except ValueError:
        print(f"ERROR invalid date: {args.date!r} (expected YYYY-MM-DD)", file=sys.stderr)
        return 2

    cfg = FeedConfig.from_env()
    session = FeedSession(loader=make_loader(cfg), cfg=cfg, day=day)
    asyncio.run(session.change_date(day))

    out_path = Path(args.out) if args.out else Path(DEFAULT_OUT_DIR) / f"feed-{day.isoformat()}.html"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(render_snapshot(session), encoding="utf-8")

    report = session.report
    failures = report.total_failures if report else 0
    log_event("snapshot_written", day=day.isoformat(), path=str(out_path), items=len(session.items), failures=failures)
    print(f"OK day={day.isoformat()} items={len(session.items)} failures={failures} out={out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
