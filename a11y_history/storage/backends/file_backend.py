"""File-based storage backend.

Each key is stored as ``{data_dir}/{key}.json``. Writes go to a temporary
file first and are moved into place, so a failed write never leaves a
half-written blob behind.
"""

import errno
import logging
import os
import tempfile
from pathlib import Path

from a11y_history.consts import DEFAULT_DATA_DIR
from a11y_history.storage.backends.base import StorageBackend
from a11y_history.storage.errors import (
    StorageError,
    StorageQuotaExceededError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC), errno.EFBIG}


class FileBackend(StorageBackend):
    """File-based key-value storage.

    Directory structure:
        {data_dir}/
        ├── accessibility_scan_history.json
        └── {key}.json
    """

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR, max_bytes: int | None = None):
        """Initialize FileBackend.

        Args:
            data_dir: Directory holding one file per key.
            max_bytes: Optional per-value size limit (UTF-8 bytes).
        """
        self.data_dir = Path(data_dir)
        self.max_bytes = max_bytes

    def _path(self, key: str) -> Path:
        """Get the file path for a key."""
        return self.data_dir / f"{key}.json"

    def _ensure_dir(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create data directory {self.data_dir}: {e}") from e

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(f"{path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        payload = value.encode("utf-8")
        if self.max_bytes is not None and len(payload) > self.max_bytes:
            raise StorageQuotaExceededError(
                f"Value for {key!r} is {len(payload)} bytes, limit is {self.max_bytes}"
            )

        self._ensure_dir()
        path = self._path(key)
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceededError(f"No space left writing {path}: {e}") from e
            if isinstance(e, PermissionError):
                raise StorageUnavailableError(f"Cannot write {path}: {e}") from e
            raise StorageError(f"Failed to write {path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.debug(f"Wrote {key} ({len(payload)} bytes) to {path}")

    def remove_item(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageUnavailableError(f"Cannot remove {path}: {e}") from e
        return True
