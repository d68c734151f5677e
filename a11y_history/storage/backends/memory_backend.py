"""In-memory storage backend."""

from a11y_history.storage.backends.base import StorageBackend
from a11y_history.storage.errors import StorageQuotaExceededError, StorageUnavailableError
from a11y_history.utils import utf16_size


class MemoryBackend(StorageBackend):
    """Dict-backed storage with browser local-storage semantics.

    Size is charged at two bytes per UTF-16 code unit for keys and values.
    Setting ``available=False`` simulates a disabled or sandboxed medium.
    """

    def __init__(self, quota_bytes: int | None = None, available: bool = True):
        """Initialize MemoryBackend.

        Args:
            quota_bytes: Total size budget. None means unlimited.
            available: Whether the medium accepts reads and writes.
        """
        self.quota_bytes = quota_bytes
        self.available = available
        self._items: dict[str, str] = {}

    def _check_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("In-memory storage is disabled")

    def _used_bytes(self, exclude: str | None = None) -> int:
        return sum(
            utf16_size(k) + utf16_size(v) for k, v in self._items.items() if k != exclude
        )

    def get_item(self, key: str) -> str | None:
        self._check_available()
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_available()
        if self.quota_bytes is not None:
            needed = self._used_bytes(exclude=key) + utf16_size(key) + utf16_size(value)
            if needed > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"Writing {key!r} needs {needed} bytes, quota is {self.quota_bytes}"
                )
        self._items[key] = value

    def remove_item(self, key: str) -> bool:
        self._check_available()
        return self._items.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._items)
