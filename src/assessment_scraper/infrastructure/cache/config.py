"""Cache backend configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CACHE_URL_ENV_VAR = "ASSESSMENT_SCRAPER_CACHE_URL"


@dataclass(frozen=True)
class CacheConfig:
    """Resolved cache backend settings; no URL means caching is disabled."""

    url: str | None = None

    @property
    def enabled(self) -> bool:
        return self.url is not None


def load_cache_config(url_override: str | None = None) -> CacheConfig:
    """Resolve cache URL from explicit override or environment."""
    raw_value = url_override if url_override is not None else os.environ.get(CACHE_URL_ENV_VAR, "")
    resolved = raw_value.strip()
    return CacheConfig(url=resolved if resolved else None)


def make_sqlite_url(database_path: Path) -> str:
    """Build SQLAlchemy SQLite URL from path."""
    return f"sqlite:///{database_path.as_posix()}"
