from a11y_history.storage.backends.base import StorageBackend
from a11y_history.storage.backends.file_backend import FileBackend
from a11y_history.storage.backends.memory_backend import MemoryBackend

__all__ = ["FileBackend", "MemoryBackend", "StorageBackend"]
