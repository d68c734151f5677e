"""Abstract base class for key-value storage backends.

Backends model a small synchronous key-value medium (a browser's local
storage, a directory of files, a dict). Values are strings; the history
store handles serialization.
"""

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Abstract base class for key-value storage implementations.

    Implementations raise ``StorageUnavailableError`` when the medium cannot
    be used at all and ``StorageQuotaExceededError`` when a write does not
    fit.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Read a value.

        Args:
            key: Storage key.

        Returns:
            Stored string, or None if the key is absent.
        """
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Write a value, replacing any existing one.

        Args:
            key: Storage key.
            value: String to store.
        """
        ...

    @abstractmethod
    def remove_item(self, key: str) -> bool:
        """Remove a value.

        Args:
            key: Storage key.

        Returns:
            True if the key existed, False otherwise.
        """
        ...
