"""Token-bucket rate limiting with pluggable bucket storage."""

from ratebucket.bucket import TokenBucket, consume, refill
from ratebucket.limiter import RateLimiter, RateLimiterBase, SimpleRateLimiter
from ratebucket.state import BucketState, InvalidStateError
from ratebucket.storage import (
    InMemoryStorage,
    JsonFileStorage,
    StorageAdapter,
    StorageError,
)

__all__ = [
    "BucketState",
    "InMemoryStorage",
    "InvalidStateError",
    "JsonFileStorage",
    "RateLimiter",
    "RateLimiterBase",
    "SimpleRateLimiter",
    "StorageAdapter",
    "StorageError",
    "TokenBucket",
    "consume",
    "refill",
]
