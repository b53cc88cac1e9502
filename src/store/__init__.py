"""
Persistent key-value stores for onboarding data.

Modules:
- kv_store: store protocol plus in-memory and JSON-file backends
- s3_store: S3-backed store, encrypted at rest with Fernet
- config: environment-driven backend selection
"""

from .errors import StorageConflictError, StorageError
from .kv_store import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "StorageConflictError",
    "StorageError",
]
