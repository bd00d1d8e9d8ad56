"""Security infrastructure package."""

from assessment_scraper.infrastructure.security.keyring_store import (
    KeyringSecretStore,
    KeyringStoreError,
)

__all__ = ["KeyringSecretStore", "KeyringStoreError"]
