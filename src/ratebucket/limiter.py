"""Rate limiter that runs token-bucket decisions against a storage adapter."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ratebucket.bucket import TokenBucket
from ratebucket.constants import DEFAULT_RESOURCE, DEFAULT_TOKENS, HOUR, MINUTE, SECOND
from ratebucket.state import BucketState
from ratebucket.storage import StorageAdapter

logger = logging.getLogger(__name__)


class RateLimiterBase(ABC):
    """Contract shared by rate limiters: a decision call and a state lookup."""

    @abstractmethod
    def allow(
        self,
        key: str,
        resource: str = DEFAULT_RESOURCE,
        tokens: int = DEFAULT_TOKENS,
    ) -> bool:
        """Consume *tokens* for (key, resource). ``False`` means rate limited."""

    @abstractmethod
    def get_state(
        self, key: str, resource: str = DEFAULT_RESOURCE,
    ) -> Optional[BucketState]:
        """Return the stored bucket, or ``None`` if it was never used."""


class RateLimiter(RateLimiterBase):
    """Token-bucket rate limiter keyed by (key, resource).

    Each ``allow`` call does exactly one ``load`` and one ``save``. The
    sequence is not atomic: concurrent callers sharing a storage backend
    get correct results only if that backend serializes load-modify-save.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        capacity: int,
        tokens_per_interval: int,
        interval_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if tokens_per_interval <= 0:
            raise ValueError("tokens_per_interval must be > 0")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._storage = storage
        self._capacity = capacity
        self._refill_rate = tokens_per_interval / interval_seconds
        self._clock = clock
        self._bucket = TokenBucket()

    @classmethod
    def per_second(cls, storage: StorageAdapter, capacity: int,
                   tokens_per_second: int, **kwargs) -> RateLimiter:
        return cls(storage, capacity, tokens_per_second, SECOND, **kwargs)

    @classmethod
    def per_minute(cls, storage: StorageAdapter, capacity: int,
                   tokens_per_minute: int, **kwargs) -> RateLimiter:
        return cls(storage, capacity, tokens_per_minute, MINUTE, **kwargs)

    @classmethod
    def per_hour(cls, storage: StorageAdapter, capacity: int,
                 tokens_per_hour: int, **kwargs) -> RateLimiter:
        return cls(storage, capacity, tokens_per_hour, HOUR, **kwargs)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_rate_per_second(self) -> float:
        return self._refill_rate

    def allow(
        self,
        key: str,
        resource: str = DEFAULT_RESOURCE,
        tokens: int = DEFAULT_TOKENS,
    ) -> bool:
        """Try to consume *tokens* from the (key, resource) bucket.

        The bucket is always refilled first, and the refilled state is
        saved even when the request is denied so elapsed time is never lost.
        """
        now = self._clock()

        state = self._storage.load(key, resource)
        if state is None:
            state = BucketState.new_full(self._capacity, self._refill_rate, now)
            logger.debug("New bucket %s:%s (capacity=%d, rate=%.6f/s)",
                         resource, key, self._capacity, self._refill_rate)

        refilled = self._bucket.refill(state, now)
        updated = self._bucket.consume(refilled, tokens)

        if updated is None:
            self._storage.save(key, resource, refilled)
            logger.debug("Denied %s:%s: requested %d, available %.6f",
                         resource, key, tokens, refilled.tokens)
            return False

        self._storage.save(key, resource, updated)
        logger.debug("Allowed %s:%s: consumed %d, remaining %.6f",
                     resource, key, tokens, updated.tokens)
        return True

    def get_state(
        self, key: str, resource: str = DEFAULT_RESOURCE,
    ) -> Optional[BucketState]:
        return self._storage.load(key, resource)


class SimpleRateLimiter:
    """Wraps a limiter with a fixed resource name."""

    def __init__(self, limiter: RateLimiterBase, resource: str = DEFAULT_RESOURCE):
        self._limiter = limiter
        self._resource = resource

    @property
    def resource(self) -> str:
        return self._resource

    def allow(self, key: str, tokens: int = DEFAULT_TOKENS) -> bool:
        return self._limiter.allow(key, self._resource, tokens)
