"""Factory for configured cache store instances."""

from __future__ import annotations

import logging

from assessment_scraper.application.ports import CacheStore
from assessment_scraper.infrastructure.cache.base import Base
from assessment_scraper.infrastructure.cache.config import CacheConfig
from assessment_scraper.infrastructure.cache.disabled_store import DisabledCacheStore
from assessment_scraper.infrastructure.cache.session import (
    create_cache_engine,
    create_session_factory,
)
from assessment_scraper.infrastructure.cache.sqlalchemy_store import SqlAlchemyCacheStore

LOGGER = logging.getLogger(__name__)


def create_cache_store(config: CacheConfig) -> CacheStore:
    """Build cache store for config; disabled when no URL is configured."""
    if config.url is None:
        LOGGER.info("event=cache_disabled reason=no_cache_url")
        return DisabledCacheStore()

    engine = create_cache_engine(config.url)
    Base.metadata.create_all(engine)
    LOGGER.info("event=cache_enabled backend=%s", engine.url.get_backend_name())
    return SqlAlchemyCacheStore(create_session_factory(engine), engine=engine)
