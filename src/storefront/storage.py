"""Entity repositories for storefront.

Every store talks to its entities through the ``Repository`` protocol, so the
same store code runs against process memory (the default, and what tests use)
or against JSON files on disk.
"""

from __future__ import annotations

import copy
import fcntl
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generic, Iterator, Protocol, TypeVar

from .errors import InvalidSchemaVersionError

SCHEMA_VERSION = 1


class Record(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


T = TypeVar("T", bound=Record)


class Repository(Protocol[T]):
    """Keyed collection of one entity type.

    Entities are values: ``get`` returns a copy, and a changed entity must be
    written back with ``put``.
    """

    def get(self, key: str) -> T | None: ...

    def put(self, key: str, entity: T) -> None: ...

    def delete(self, key: str) -> bool: ...

    def values(self) -> list[T]: ...

    def __contains__(self, key: object) -> bool: ...

    def __len__(self) -> int: ...


class MemoryRepository(Generic[T]):
    """In-process repository backed by a dict."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}
        self._mutex = threading.RLock()

    def get(self, key: str) -> T | None:
        with self._mutex:
            entity = self._items.get(key)
            return copy.deepcopy(entity) if entity is not None else None

    def put(self, key: str, entity: T) -> None:
        with self._mutex:
            self._items[key] = copy.deepcopy(entity)

    def delete(self, key: str) -> bool:
        with self._mutex:
            return self._items.pop(key, None) is not None

    def values(self) -> list[T]:
        with self._mutex:
            return [copy.deepcopy(e) for e in self._items.values()]

    def __contains__(self, key: object) -> bool:
        with self._mutex:
            return key in self._items

    def __len__(self) -> int:
        with self._mutex:
            return len(self._items)


class JsonFileRepository(Generic[T]):
    """Repository persisted as a single JSON document.

    Writes go to a temp file that is renamed over the original, and every
    read-modify-write holds an exclusive lock on a sibling lock file.
    """

    def __init__(self, path: Path, factory: Callable[[dict[str, Any]], T]):
        """
        Initialize JsonFileRepository.

        Args:
            path: JSON file holding the collection (created on first write).
            factory: Builds an entity from its ``to_dict`` output.
        """
        self.path = path
        self.factory = factory
        self._lock_path = path.parent / f".{path.stem}.lock"

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the collection for read-modify-write operations."""
        self._ensure_dir()
        with open(self._lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_data(self) -> dict[str, Any]:
        """Load the collection from disk."""
        if not self.path.exists():
            return {"schema_version": SCHEMA_VERSION, "records": {}}

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)
        return data

    def _save_data(self, data: dict[str, Any]) -> None:
        """Save the collection to disk atomically."""
        self._ensure_dir()

        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.stem}_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def get(self, key: str) -> T | None:
        record = self._load_data()["records"].get(key)
        return self.factory(record) if record is not None else None

    def put(self, key: str, entity: T) -> None:
        with self._lock():
            data = self._load_data()
            data["records"][key] = entity.to_dict()
            self._save_data(data)

    def delete(self, key: str) -> bool:
        with self._lock():
            data = self._load_data()
            if key not in data["records"]:
                return False
            del data["records"][key]
            self._save_data(data)
            return True

    def values(self) -> list[T]:
        return [self.factory(r) for r in self._load_data()["records"].values()]

    def __contains__(self, key: object) -> bool:
        return key in self._load_data()["records"]

    def __len__(self) -> int:
        return len(self._load_data()["records"])
