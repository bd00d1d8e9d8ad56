"""Alembic environment for the cache database."""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from assessment_scraper.infrastructure.cache import models  # noqa: F401
from assessment_scraper.infrastructure.cache.base import Base
from assessment_scraper.infrastructure.cache.config import CACHE_URL_ENV_VAR

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _resolve_url() -> str:
    configured = os.environ.get(CACHE_URL_ENV_VAR, "").strip()
    if configured and not config.attributes.get("ignore_env_url", False):
        return configured
    url = config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("No cache database URL configured for migrations.")
    return url


def run_migrations_offline() -> None:
    """Emit migration SQL without a live connection."""
    context.configure(
        url=_resolve_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _resolve_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
