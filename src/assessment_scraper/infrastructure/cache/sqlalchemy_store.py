"""SQLAlchemy-backed implementation of the cache store contract."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime
from fnmatch import fnmatchcase
from typing import TypeVar

from sqlalchemy import Engine, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from assessment_scraper.application.ports import CacheStore
from assessment_scraper.infrastructure.cache.models import (
    CacheCounterModel,
    CacheEntryModel,
    CacheListItemModel,
    CacheSetMemberModel,
)

_LIKE_ESCAPE = "\\"

TItem = TypeVar("TItem")


class SqlAlchemyCacheStore(CacheStore):
    """Persist cache keys, sets, lists and counters in relational tables."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        engine: Engine | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(tz=UTC),
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self._now = now

    def close(self) -> None:
        """Dispose owned engine."""
        if self._engine is not None:
            self._engine.dispose()

    def get(self, key: str) -> object | None:
        with self._session_factory() as session:
            entry = session.get(CacheEntryModel, key)
            if entry is not None and not self._is_expired(entry):
                return json.loads(entry.value)
            counter = session.get(CacheCounterModel, key)
            if counter is not None:
                return counter.value
        return None

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        stored_at = self._now()
        expires_at = (
            stored_at.timestamp() + ttl_seconds
            if ttl_seconds is not None and ttl_seconds > 0
            else None
        )
        with self._session_factory() as session:
            session.execute(delete(CacheCounterModel).where(CacheCounterModel.key == key))
            session.merge(
                CacheEntryModel(
                    key=key,
                    value=json.dumps(value, ensure_ascii=False),
                    stored_at=stored_at,
                    expires_at=expires_at,
                )
            )
            session.commit()

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        key_list = list(keys)
        with self._session_factory() as session:
            existing = set(self._existing_names(session, key_list))
            session.execute(delete(CacheEntryModel).where(CacheEntryModel.key.in_(key_list)))
            session.execute(delete(CacheCounterModel).where(CacheCounterModel.key.in_(key_list)))
            session.execute(
                delete(CacheSetMemberModel).where(CacheSetMemberModel.set_name.in_(key_list))
            )
            session.execute(
                delete(CacheListItemModel).where(CacheListItemModel.list_name.in_(key_list))
            )
            session.commit()
        return len(existing)

    def keys(self, pattern: str) -> list[str]:
        like_pattern = _glob_to_like(pattern)
        now_ts = self._now().timestamp()
        with self._session_factory() as session:
            names: set[str] = set()
            names.update(
                session.execute(
                    select(CacheEntryModel.key).where(
                        CacheEntryModel.key.like(like_pattern, escape=_LIKE_ESCAPE),
                        or_(
                            CacheEntryModel.expires_at.is_(None),
                            CacheEntryModel.expires_at > now_ts,
                        ),
                    )
                ).scalars()
            )
            names.update(
                session.execute(
                    select(CacheCounterModel.key).where(
                        CacheCounterModel.key.like(like_pattern, escape=_LIKE_ESCAPE)
                    )
                ).scalars()
            )
            names.update(
                session.execute(
                    select(CacheSetMemberModel.set_name)
                    .where(CacheSetMemberModel.set_name.like(like_pattern, escape=_LIKE_ESCAPE))
                    .distinct()
                ).scalars()
            )
            names.update(
                session.execute(
                    select(CacheListItemModel.list_name)
                    .where(CacheListItemModel.list_name.like(like_pattern, escape=_LIKE_ESCAPE))
                    .distinct()
                ).scalars()
            )
        # LIKE is case-insensitive on SQLite; re-check with exact glob semantics.
        return sorted(name for name in names if fnmatchcase(name, pattern))

    def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        if count < 1:
            raise ValueError("count must be >= 1")
        matched = self.keys(match)
        page = matched[cursor : cursor + count]
        next_cursor = cursor + count
        return (next_cursor if next_cursor < len(matched) else 0), page

    def set_add(self, name: str, *members: str) -> int:
        added = 0
        with self._session_factory() as session:
            for member in dict.fromkeys(members):
                if session.get(CacheSetMemberModel, (name, member)) is None:
                    session.add(CacheSetMemberModel(set_name=name, member=member))
                    added += 1
            session.commit()
        return added

    def set_is_member(self, name: str, member: str) -> bool:
        with self._session_factory() as session:
            return session.get(CacheSetMemberModel, (name, member)) is not None

    def set_remove(self, name: str, *members: str) -> int:
        if not members:
            return 0
        with self._session_factory() as session:
            result = session.execute(
                delete(CacheSetMemberModel).where(
                    CacheSetMemberModel.set_name == name,
                    CacheSetMemberModel.member.in_(list(members)),
                )
            )
            session.commit()
        return int(result.rowcount or 0)

    def set_members(self, name: str) -> set[str]:
        with self._session_factory() as session:
            return set(
                session.execute(
                    select(CacheSetMemberModel.member).where(CacheSetMemberModel.set_name == name)
                ).scalars()
            )

    def list_append(self, name: str, *values: str) -> int:
        with self._session_factory() as session:
            for value in values:
                session.add(CacheListItemModel(list_name=name, value=value))
            session.flush()
            length = session.execute(
                select(func.count())
                .select_from(CacheListItemModel)
                .where(CacheListItemModel.list_name == name)
            ).scalar_one()
            session.commit()
        return int(length)

    def list_trim(self, name: str, start: int, stop: int) -> None:
        with self._session_factory() as session:
            ids = list(
                session.execute(
                    select(CacheListItemModel.id)
                    .where(CacheListItemModel.list_name == name)
                    .order_by(CacheListItemModel.id)
                ).scalars()
            )
            keep = set(_inclusive_slice(ids, start, stop))
            stale = [item_id for item_id in ids if item_id not in keep]
            if stale:
                session.execute(delete(CacheListItemModel).where(CacheListItemModel.id.in_(stale)))
            session.commit()

    def list_range(self, name: str, start: int, stop: int) -> list[str]:
        with self._session_factory() as session:
            values = list(
                session.execute(
                    select(CacheListItemModel.value)
                    .where(CacheListItemModel.list_name == name)
                    .order_by(CacheListItemModel.id)
                ).scalars()
            )
        return _inclusive_slice(values, start, stop)

    def increment(self, name: str) -> int:
        with self._session_factory() as session:
            result = session.execute(
                update(CacheCounterModel)
                .where(CacheCounterModel.key == name)
                .values(value=CacheCounterModel.value + 1)
            )
            if not result.rowcount:
                session.add(CacheCounterModel(key=name, value=1))
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    session.execute(
                        update(CacheCounterModel)
                        .where(CacheCounterModel.key == name)
                        .values(value=CacheCounterModel.value + 1)
                    )
                    session.commit()
            else:
                session.commit()
            return int(
                session.execute(
                    select(CacheCounterModel.value).where(CacheCounterModel.key == name)
                ).scalar_one()
            )

    def _is_expired(self, entry: CacheEntryModel) -> bool:
        return entry.expires_at is not None and entry.expires_at <= self._now().timestamp()

    @staticmethod
    def _existing_names(session: Session, keys: list[str]) -> list[str]:
        found: list[str] = []
        found.extend(
            session.execute(select(CacheEntryModel.key).where(CacheEntryModel.key.in_(keys)))
            .scalars()
        )
        found.extend(
            session.execute(select(CacheCounterModel.key).where(CacheCounterModel.key.in_(keys)))
            .scalars()
        )
        found.extend(
            session.execute(
                select(CacheSetMemberModel.set_name)
                .where(CacheSetMemberModel.set_name.in_(keys))
                .distinct()
            ).scalars()
        )
        found.extend(
            session.execute(
                select(CacheListItemModel.list_name)
                .where(CacheListItemModel.list_name.in_(keys))
                .distinct()
            ).scalars()
        )
        return found


def _glob_to_like(pattern: str) -> str:
    translated: list[str] = []
    for char in pattern:
        if char == "*":
            translated.append("%")
        elif char == "?":
            translated.append("_")
        elif char in ("%", "_", _LIKE_ESCAPE):
            translated.append(f"{_LIKE_ESCAPE}{char}")
        else:
            translated.append(char)
    return "".join(translated)


def _inclusive_slice(values: list[TItem], start: int, stop: int) -> list[TItem]:
    length = len(values)
    if start < 0:
        start = length + start
    if stop < 0:
        stop = length + stop
    start = max(start, 0)
    stop = min(stop, length - 1)
    if start > stop:
        return []
    return values[start : stop + 1]
