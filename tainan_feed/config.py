# tainan_feed/config.py
"""Runtime settings for fetching and display. Defaults overridable via env vars."""
from __future__ import annotations

import os

from pydantic import BaseModel, Field


COUNCIL_BASE_URL = "https://kiang.github.io/www.tncc.gov.tw"
GOVERNMENT_BASE_URL = "https://kiang.github.io/www.tainan.gov.tw"


class FeedConfig(BaseModel):
    council_base_url: str = COUNCIL_BASE_URL
    government_base_url: str = GOVERNMENT_BASE_URL
    # Transport
    timeout_s: float = Field(default=10.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_sleep_s: float = Field(default=0.5, ge=0)
    # Display
    truncate_at: int = Field(default=150, ge=1)
    display_limit: int = Field(default=20, ge=1)
    # Sessions
    session_ttl_s: float = Field(default=24 * 60 * 60, gt=0)
    max_sessions: int = Field(default=500, ge=1)

    @classmethod
    def from_env(cls) -> FeedConfig:
        """
        Build config from FEED_* environment variables.
        Unset variables keep their defaults.
        """
        env_map = {
            "council_base_url": "FEED_COUNCIL_BASE_URL",
            "government_base_url": "FEED_GOVERNMENT_BASE_URL",
            "timeout_s": "FEED_TIMEOUT_S",
            "retry_attempts": "FEED_RETRY_ATTEMPTS",
            "retry_base_sleep_s": "FEED_RETRY_BASE_SLEEP_S",
            "truncate_at": "FEED_TRUNCATE_AT",
            "display_limit": "FEED_DISPLAY_LIMIT",
            "session_ttl_s": "FEED_SESSION_TTL_S",
            "max_sessions": "FEED_MAX_SESSIONS",
        }
        overrides = {}
        for field_name, var in env_map.items():
            value = os.environ.get(var)
            if value:
                overrides[field_name] = value.rstrip("/") if field_name.endswith("_url") else value
        return cls(**overrides)
