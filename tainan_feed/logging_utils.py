import json
import logging
from datetime import datetime, timezone


logging.basicConfig(level=logging.INFO)

logger = logging.getLogger("tainan_feed")


def log_event(event: str, *, level: int = logging.INFO, **fields):
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        **fields,
    }

    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
