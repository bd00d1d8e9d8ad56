"""Keyring-backed secret storage adapter."""

from __future__ import annotations

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

DEFAULT_SERVICE_NAME = "assessment-scraper"
RELAY_SECRET_NAME = "scraperapi"


class KeyringStoreError(RuntimeError):
    """Raised when keyring backend operation fails."""


class KeyringSecretStore:
    """Store relay credentials using OS keyring backend."""

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME) -> None:
        self._service_name = service_name

    def set_relay_key(self, api_key: str, *, relay: str = RELAY_SECRET_NAME) -> None:
        """Persist relay API key."""
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("api_key must not be empty")

        try:
            keyring.set_password(self._service_name, self._username(relay), normalized)
        except KeyringError as exc:
            raise KeyringStoreError(f"Failed to persist key for relay {relay}.") from exc

    def get_relay_key(self, *, relay: str = RELAY_SECRET_NAME) -> str | None:
        """Load relay API key or return None."""
        try:
            secret = keyring.get_password(self._service_name, self._username(relay))
        except KeyringError as exc:
            raise KeyringStoreError(f"Failed to read key for relay {relay}.") from exc

        return secret if secret else None

    def delete_relay_key(self, *, relay: str = RELAY_SECRET_NAME) -> None:
        """Delete relay key; no-op if key is already absent."""
        try:
            keyring.delete_password(self._service_name, self._username(relay))
        except PasswordDeleteError:
            return
        except KeyringError as exc:
            raise KeyringStoreError(f"Failed to delete key for relay {relay}.") from exc

    @staticmethod
    def _username(relay: str) -> str:
        return f"relay:{relay}"
