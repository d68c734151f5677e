"""Exceptions raised by storage backends.

The history store converts these into failed ``StorageResult`` values;
they never cross its public API.
"""


class StorageError(Exception):
    """Base class for storage backend failures."""


class StorageUnavailableError(StorageError):
    """The storage medium is disabled, sandboxed or not writable."""


class StorageQuotaExceededError(StorageError):
    """The storage medium refused a write for lack of space."""
