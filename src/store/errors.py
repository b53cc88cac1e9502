from __future__ import annotations


class StorageError(Exception):
    """Raised when the persistent key-value store rejects a read or write."""
    pass


class StorageConflictError(StorageError):
    """Raised when an ETag precondition fails during a conditional write."""
    pass
