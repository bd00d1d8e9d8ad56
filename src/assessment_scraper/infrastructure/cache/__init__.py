"""Cache infrastructure package."""

from assessment_scraper.infrastructure.cache.config import CacheConfig, load_cache_config
from assessment_scraper.infrastructure.cache.disabled_store import DisabledCacheStore
from assessment_scraper.infrastructure.cache.factory import create_cache_store
from assessment_scraper.infrastructure.cache.memory_store import InMemoryCacheStore
from assessment_scraper.infrastructure.cache.sqlalchemy_store import SqlAlchemyCacheStore

__all__ = [
    "CacheConfig",
    "DisabledCacheStore",
    "InMemoryCacheStore",
    "SqlAlchemyCacheStore",
    "create_cache_store",
    "load_cache_config",
]
