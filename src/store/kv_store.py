from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from .errors import StorageError


logger = logging.getLogger(__name__)

StoreValue = Union[str, bool, int, float, None]

_SCALAR_TYPES = (str, bool, int, float, type(None))


def check_entries(entries: Mapping[str, Any]) -> Dict[str, StoreValue]:
    """Validate a batch before any backend touches durable storage.

    Keys must be strings and values JSON scalars; anything else raises
    `StorageError` so a batch is either written whole or not at all.
    """
    out: Dict[str, StoreValue] = {}
    for key, value in entries.items():
        if not isinstance(key, str):
            raise StorageError(f"Store keys must be strings, got {type(key).__name__}")
        if not isinstance(value, _SCALAR_TYPES):
            raise StorageError(
                f"Unsupported value type for key {key!r}: {type(value).__name__}"
            )
        out[key] = value
    return out


class KeyValueStore(Protocol):
    """Capability the onboarding flow needs from persistent storage."""

    def get(self, key: str, default: StoreValue = None) -> StoreValue: ...

    def set(self, key: str, value: StoreValue) -> None: ...

    def set_many(self, entries: Mapping[str, StoreValue]) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStore:
    """Dict-backed store. Nothing survives the process; meant for tests and previews."""

    def __init__(self, initial: Optional[Mapping[str, StoreValue]] = None) -> None:
        self._data: Dict[str, StoreValue] = dict(check_entries(initial or {}))

    def get(self, key: str, default: StoreValue = None) -> StoreValue:
        return self._data.get(key, default)

    def set(self, key: str, value: StoreValue) -> None:
        self.set_many({key: value})

    def set_many(self, entries: Mapping[str, StoreValue]) -> None:
        batch = check_entries(entries)
        self._data.update(batch)
        logger.debug("in-memory store wrote %d entries", len(batch))

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> Dict[str, StoreValue]:
        """Copy of everything currently stored."""
        return dict(self._data)


DEFAULT_STORE_PATH = Path(".data") / "onboarding.json"


class JsonFileStore:
    """
    Store backed by a single JSON object on local disk.

    - File layout: { key: value, ... } with scalar values only.
    - A missing file reads as an empty store.
    - Every write rewrites the whole file through a temp file and `os.replace`,
      so a batch lands atomically or not at all.
    - Unlike a best-effort cache, I/O failures and corrupt content raise
      `StorageError` instead of being ignored.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else DEFAULT_STORE_PATH

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, StoreValue]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as ex:
            raise StorageError(f"Failed to read store file {self._path}") from ex
        if not isinstance(raw, dict):
            raise StorageError(f"Store file {self._path} does not contain a JSON object")
        return check_entries(raw)

    def _dump(self, data: Dict[str, StoreValue]) -> None:
        tmp: Optional[Path] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f"{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp = Path(f.name)
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except OSError as ex:
            logger.warning("write to %s failed: %s", self._path, ex)
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise StorageError(f"Failed to write store file {self._path}") from ex

    def get(self, key: str, default: StoreValue = None) -> StoreValue:
        return self._load().get(key, default)

    def set(self, key: str, value: StoreValue) -> None:
        self.set_many({key: value})

    def set_many(self, entries: Mapping[str, StoreValue]) -> None:
        batch = check_entries(entries)
        data = self._load()
        data.update(batch)
        self._dump(data)
        logger.debug("wrote %d entries to %s", len(batch), self._path)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)
