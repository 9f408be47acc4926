from __future__ import annotations

from abc import ABC, abstractmethod

SERVICE_NAME = "zoh"


def refresh_token_key(region: str) -> str:
    return f"refresh_token_{region}"


class Store(ABC):
    """Abstract base class for secret stores."""

    name: str = "store"

    @abstractmethod
    def get(self, key: str) -> str:
        """Return the value for ``key``. Raises NotFound if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Insert or overwrite ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Raises NotFound if absent."""

    @abstractmethod
    def list(self) -> set[str]:
        """Return all stored keys."""
