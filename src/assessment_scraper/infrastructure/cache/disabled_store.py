"""No-op cache store used when no cache backend is configured."""

from __future__ import annotations

from assessment_scraper.application.ports import CacheStore


class DisabledCacheStore(CacheStore):
    """Accept every write and answer every read as empty."""

    def get(self, key: str) -> object | None:
        return None

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        return None

    def delete(self, *keys: str) -> int:
        return 0

    def keys(self, pattern: str) -> list[str]:
        return []

    def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        return 0, []

    def set_add(self, name: str, *members: str) -> int:
        return 0

    def set_is_member(self, name: str, member: str) -> bool:
        return False

    def set_remove(self, name: str, *members: str) -> int:
        return 0

    def set_members(self, name: str) -> set[str]:
        return set()

    def list_append(self, name: str, *values: str) -> int:
        return 0

    def list_trim(self, name: str, start: int, stop: int) -> None:
        return None

    def list_range(self, name: str, start: int, stop: int) -> list[str]:
        return []

    def increment(self, name: str) -> int:
        return 0
