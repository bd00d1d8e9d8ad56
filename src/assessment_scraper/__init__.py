"""Course assessment extraction with a persistent idempotency cache."""

__version__ = "0.1.0"
