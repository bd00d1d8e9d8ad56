"""Unit tests for fetcher configuration resolution."""

from __future__ import annotations

import pytest

from assessment_scraper.infrastructure.http.config import (
    DEFAULT_TIMEOUT_SECONDS,
    HTTP_TIMEOUT_ENV_VAR,
    RELAY_API_KEY_ENV_VAR,
    load_fetcher_config,
)
from assessment_scraper.infrastructure.security.keyring_store import KeyringStoreError


class FakeKeySource:
    def __init__(self, value: str | None = None, *, error: Exception | None = None) -> None:
        self._value = value
        self._error = error
        self.calls = 0

    def get_relay_key(self) -> str | None:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._value


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(RELAY_API_KEY_ENV_VAR, raising=False)
    monkeypatch.delenv(HTTP_TIMEOUT_ENV_VAR, raising=False)


def test_environment_key_takes_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(RELAY_API_KEY_ENV_VAR, " env-key ")
    key_source = FakeKeySource("keyring-key")

    config = load_fetcher_config(key_source=key_source)

    assert config.relay_api_key == "env-key"
    assert config.uses_relay is True
    assert config.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
    assert key_source.calls == 0


def test_keyring_key_used_when_environment_missing() -> None:
    config = load_fetcher_config(key_source=FakeKeySource("keyring-key"))

    assert config.relay_api_key == "keyring-key"


def test_missing_or_unreadable_key_means_direct_fetches() -> None:
    assert load_fetcher_config(key_source=FakeKeySource(None)).uses_relay is False
    assert load_fetcher_config(key_source=FakeKeySource("   ")).uses_relay is False
    failing = FakeKeySource(error=KeyringStoreError("backend down"))
    assert load_fetcher_config(key_source=failing).relay_api_key is None


def test_relay_can_be_disabled_explicitly(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(RELAY_API_KEY_ENV_VAR, "env-key")

    config = load_fetcher_config(use_relay=False, key_source=FakeKeySource("keyring-key"))

    assert config.uses_relay is False


def test_timeout_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(HTTP_TIMEOUT_ENV_VAR, "12.5")

    assert load_fetcher_config(use_relay=False).timeout_seconds == 12.5


@pytest.mark.parametrize("raw_value", ["abc", "0", "-3"])
def test_invalid_timeout_is_rejected(monkeypatch: pytest.MonkeyPatch, raw_value: str) -> None:
    monkeypatch.setenv(HTTP_TIMEOUT_ENV_VAR, raw_value)

    with pytest.raises(ValueError):
        load_fetcher_config(use_relay=False)
