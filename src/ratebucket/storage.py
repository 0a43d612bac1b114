"""Storage adapters for bucket state.

The limiter only needs ``load`` and ``save``. Neither adapter here makes the
limiter's load-modify-save sequence atomic; a store shared between
concurrent callers has to serialize that sequence itself (per-key locks,
compare-and-swap, a scripted update on the server side).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ratebucket.constants import KEY_SEPARATOR, STORE_VERSION
from ratebucket.state import BucketState

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a persistent store cannot be read."""


def bucket_id(key: str, resource: str) -> str:
    """Composite id for a (key, resource) bucket."""
    return f"{resource}{KEY_SEPARATOR}{key}"


class StorageAdapter(ABC):
    """Contract for persisting bucket state per (key, resource)."""

    @abstractmethod
    def load(self, key: str, resource: str) -> Optional[BucketState]:
        """Return the stored state, or ``None`` if the bucket was never saved."""

    @abstractmethod
    def save(self, key: str, resource: str, state: BucketState) -> None:
        """Store *state*, replacing any earlier record for the same bucket."""


class InMemoryStorage(StorageAdapter):
    """Per-instance dict of bucket states.

    Suitable for tests and single-process use. Not safe for concurrent
    load-modify-save from several threads against the same bucket.
    """

    def __init__(self):
        self._buckets: dict[str, BucketState] = {}

    def load(self, key: str, resource: str) -> Optional[BucketState]:
        return self._buckets.get(bucket_id(key, resource))

    def save(self, key: str, resource: str, state: BucketState) -> None:
        self._buckets[bucket_id(key, resource)] = state

    def delete(self, key: str, resource: str) -> bool:
        """Forget a bucket.  Returns ``True`` if it existed."""
        return self._buckets.pop(bucket_id(key, resource), None) is not None

    def clear(self) -> int:
        """Forget all buckets.  Returns the number removed."""
        removed = len(self._buckets)
        self._buckets.clear()
        return removed

    def __len__(self) -> int:
        return len(self._buckets)


class JsonFileStorage(StorageAdapter):
    """Bucket states kept in a single JSON document on disk.

    Every ``save`` rewrites the file atomically (write-tmp-then-rename).
    Intended for a single process; two processes sharing the file can
    lose each other's updates.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt bucket store {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Corrupt bucket store {self._path}: not an object")
        version = data.get("version")
        if version != STORE_VERSION:
            raise StorageError(
                f"Unsupported bucket store version {version!r} in {self._path}"
            )
        return data.get("buckets", {})

    def _write(self, buckets: dict[str, dict]) -> None:
        data = {"version": STORE_VERSION, "buckets": buckets}
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, key: str, resource: str) -> Optional[BucketState]:
        raw = self._read().get(bucket_id(key, resource))
        if raw is None:
            return None
        return BucketState.from_dict(raw)

    def save(self, key: str, resource: str, state: BucketState) -> None:
        buckets = self._read()
        buckets[bucket_id(key, resource)] = state.to_dict()
        self._write(buckets)

    def delete(self, key: str, resource: str) -> bool:
        """Forget a bucket.  Returns ``True`` if it existed."""
        buckets = self._read()
        if buckets.pop(bucket_id(key, resource), None) is None:
            return False
        self._write(buckets)
        return True

    def clear(self) -> int:
        """Forget all buckets.  Returns the number removed."""
        buckets = self._read()
        self._write({})
        logger.info("Cleared %d bucket(s) from %s", len(buckets), self._path)
        return len(buckets)
