"""Configuration for outbound document fetches."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Protocol

from assessment_scraper.infrastructure.security.keyring_store import (
    KeyringSecretStore,
    KeyringStoreError,
)

LOGGER = logging.getLogger(__name__)

RELAY_API_KEY_ENV_VAR = "SCRAPER_API_KEY"
HTTP_TIMEOUT_ENV_VAR = "ASSESSMENT_SCRAPER_HTTP_TIMEOUT"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RELAY_BASE_URL = "https://api.scraperapi.com"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; assessment-scraper-bot/1.0)"


class RelayKeySource(Protocol):
    """Fallback source for the relay credential."""

    def get_relay_key(self) -> str | None:
        """Return relay key or None."""
        ...


@dataclass(frozen=True)
class FetcherConfig:
    """Resolved fetcher settings; no relay key means direct fetches."""

    relay_api_key: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    relay_base_url: str = DEFAULT_RELAY_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def uses_relay(self) -> bool:
        return self.relay_api_key is not None


def load_fetcher_config(
    *,
    use_relay: bool = True,
    key_source: RelayKeySource | None = None,
) -> FetcherConfig:
    """Resolve fetcher config from environment, then keyring for the relay key."""
    timeout_seconds = _resolve_timeout()
    if not use_relay:
        return FetcherConfig(timeout_seconds=timeout_seconds)

    relay_api_key = _resolve_relay_key(key_source or KeyringSecretStore())
    return FetcherConfig(relay_api_key=relay_api_key, timeout_seconds=timeout_seconds)


def _resolve_relay_key(key_source: RelayKeySource) -> str | None:
    configured = os.environ.get(RELAY_API_KEY_ENV_VAR, "").strip()
    if configured:
        return configured

    try:
        stored = key_source.get_relay_key()
    except KeyringStoreError:
        LOGGER.warning("event=relay_key_lookup_failed source=keyring")
        return None
    if stored is None:
        return None
    stored = stored.strip()
    return stored if stored else None


def _resolve_timeout() -> float:
    raw_value = os.environ.get(HTTP_TIMEOUT_ENV_VAR, "").strip()
    if not raw_value:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{HTTP_TIMEOUT_ENV_VAR} must be a number, got {raw_value!r}.") from exc
    if timeout <= 0:
        raise ValueError(f"{HTTP_TIMEOUT_ENV_VAR} must be positive.")
    return timeout
