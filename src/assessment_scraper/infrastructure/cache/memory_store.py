"""Process-local cache store used for tests and single-run CLI sessions."""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from fnmatch import fnmatchcase

from assessment_scraper.application.ports import CacheStore


class InMemoryCacheStore(CacheStore):
    """Dictionary-backed store sharing one keyspace across value kinds."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, object] = {}
        self._expiry: dict[str, float] = {}

    def get(self, key: str) -> object | None:
        self._expire(key)
        value = self._values.get(key)
        if isinstance(value, (set, list)):
            return None
        return copy.deepcopy(value)

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        self._values[key] = copy.deepcopy(value)
        if ttl_seconds is not None and ttl_seconds > 0:
            self._expiry[key] = self._clock() + ttl_seconds
        else:
            self._expiry.pop(key, None)

    def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            self._expire(key)
            if key in self._values:
                del self._values[key]
                self._expiry.pop(key, None)
                deleted += 1
        return deleted

    def keys(self, pattern: str) -> list[str]:
        for key in list(self._expiry):
            self._expire(key)
        return sorted(key for key in self._values if fnmatchcase(key, pattern))

    def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        if count < 1:
            raise ValueError("count must be >= 1")
        matched = self.keys(match)
        page = matched[cursor : cursor + count]
        next_cursor = cursor + count
        return (next_cursor if next_cursor < len(matched) else 0), page

    def set_add(self, name: str, *members: str) -> int:
        current = self._values.setdefault(name, set())
        if not isinstance(current, set):
            raise TypeError(f"Key {name} does not hold a set.")
        before = len(current)
        current.update(members)
        return len(current) - before

    def set_is_member(self, name: str, member: str) -> bool:
        current = self._values.get(name)
        return isinstance(current, set) and member in current

    def set_remove(self, name: str, *members: str) -> int:
        current = self._values.get(name)
        if not isinstance(current, set):
            return 0
        removed = len(current.intersection(members))
        current.difference_update(members)
        if not current:
            del self._values[name]
        return removed

    def set_members(self, name: str) -> set[str]:
        current = self._values.get(name)
        return set(current) if isinstance(current, set) else set()

    def list_append(self, name: str, *values: str) -> int:
        current = self._values.setdefault(name, [])
        if not isinstance(current, list):
            raise TypeError(f"Key {name} does not hold a list.")
        current.extend(values)
        return len(current)

    def list_trim(self, name: str, start: int, stop: int) -> None:
        current = self._values.get(name)
        if not isinstance(current, list):
            return
        trimmed = _inclusive_slice(current, start, stop)
        if trimmed:
            self._values[name] = trimmed
        else:
            del self._values[name]

    def list_range(self, name: str, start: int, stop: int) -> list[str]:
        current = self._values.get(name)
        if not isinstance(current, list):
            return []
        return _inclusive_slice(current, start, stop)

    def increment(self, name: str) -> int:
        self._expire(name)
        current = self._values.get(name, 0)
        if isinstance(current, bool) or not isinstance(current, int):
            raise TypeError(f"Key {name} does not hold an integer.")
        self._values[name] = current + 1
        return current + 1

    def _expire(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self._clock():
            self._values.pop(key, None)
            self._expiry.pop(key, None)


def _inclusive_slice(values: list[str], start: int, stop: int) -> list[str]:
    length = len(values)
    if start < 0:
        start = length + start
    if stop < 0:
        stop = length + stop
    start = max(start, 0)
    stop = min(stop, length - 1)
    if start > stop:
        return []
    return list(values[start : stop + 1])
