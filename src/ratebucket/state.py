"""Immutable bucket state snapshot."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass


class InvalidStateError(ValueError):
    """Raised when a BucketState is built from out-of-range values."""


@dataclass(frozen=True)
class BucketState:
    """State of one token bucket at a point in time.

    Every transition produces a new instance; an existing instance is never
    changed, so a caller holding an older snapshot keeps a valid value.
    """

    capacity: int
    refill_rate_per_second: float
    tokens: float
    last_refill_timestamp: float

    def __post_init__(self):
        # Positive form so NaN fails every check
        if not self.capacity > 0:
            raise InvalidStateError("capacity must be > 0")
        if not (self.refill_rate_per_second > 0
                and math.isfinite(self.refill_rate_per_second)):
            raise InvalidStateError("refill rate must be > 0")
        if not 0 <= self.tokens <= self.capacity:
            raise InvalidStateError("tokens must be between 0 and capacity")
        if not math.isfinite(self.last_refill_timestamp):
            raise InvalidStateError("last refill timestamp must be finite")

    @classmethod
    def new_full(
        cls, capacity: int, refill_rate_per_second: float, now: float,
    ) -> BucketState:
        """Return a bucket holding ``capacity`` tokens, last refilled at *now*."""
        return cls(
            capacity=capacity,
            refill_rate_per_second=refill_rate_per_second,
            tokens=float(capacity),
            last_refill_timestamp=now,
        )

    def with_tokens_and_timestamp(
        self, tokens: float, last_refill_timestamp: float,
    ) -> BucketState:
        """Return a copy with new tokens and timestamp (validation re-runs)."""
        return dataclasses.replace(
            self, tokens=tokens, last_refill_timestamp=last_refill_timestamp,
        )

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> BucketState:
        """Rebuild a state from a stored record.

        Raises ``InvalidStateError`` if the record is missing a field, has
        a non-numeric value, or is out of range.
        """
        try:
            fields = dict(
                capacity=int(raw["capacity"]),
                refill_rate_per_second=float(raw["refill_rate_per_second"]),
                tokens=float(raw["tokens"]),
                last_refill_timestamp=float(raw["last_refill_timestamp"]),
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise InvalidStateError(f"malformed bucket record: {e!r}") from e
        return cls(**fields)
