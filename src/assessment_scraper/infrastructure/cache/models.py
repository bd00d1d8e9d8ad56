"""SQLAlchemy models backing the key-value cache store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from assessment_scraper.infrastructure.cache.base import Base


class CacheEntryModel(Base):
    """Plain value stored under one key, serialized as JSON."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    stored_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[float | None] = mapped_column(Float, nullable=True, index=True)


class CacheSetMemberModel(Base):
    """One member of a named set."""

    __tablename__ = "cache_set_members"

    set_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    member: Mapped[str] = mapped_column(String(255), primary_key=True)


class CacheListItemModel(Base):
    """One element of a named list; insertion order follows id."""

    __tablename__ = "cache_list_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    list_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class CacheCounterModel(Base):
    """Integer counter updated with single-statement increments."""

    __tablename__ = "cache_counters"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
