"""Storage for scan history.

This module provides:
- StorageBackend: Abstract base class for key-value storage media
- FileBackend: File-based backend (one JSON file per key)
- MemoryBackend: In-memory backend with local-storage quota semantics
- ScanHistoryStore: Versioned, quota-bounded scan history over a backend
"""

from a11y_history.storage.backends.base import StorageBackend
from a11y_history.storage.backends.file_backend import FileBackend
from a11y_history.storage.backends.memory_backend import MemoryBackend
from a11y_history.storage.errors import (
    StorageError,
    StorageQuotaExceededError,
    StorageUnavailableError,
)
from a11y_history.storage.history_store import ScanHistoryStore

__all__ = [
    "FileBackend",
    "MemoryBackend",
    "ScanHistoryStore",
    "StorageBackend",
    "StorageError",
    "StorageQuotaExceededError",
    "StorageUnavailableError",
]
