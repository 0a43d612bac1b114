"""Token-bucket state transitions: refill and consume.

Both operations are pure: they read a ``BucketState`` and return a new one
(or ``None``), so they can be called from any thread without locking.
"""

from __future__ import annotations

from typing import Optional

from ratebucket.constants import PRECISION_DIGITS
from ratebucket.state import BucketState


class TokenBucket:
    """Stateless refill/consume operations over ``BucketState`` values."""

    def refill(self, state: BucketState, now: float) -> BucketState:
        """Add tokens for the time elapsed since the last refill.

        A clock that did not advance (or went backwards) leaves the state
        untouched. The result is rounded to ``PRECISION_DIGITS`` decimals
        and capped at capacity.
        """
        last = state.last_refill_timestamp
        if now <= last:
            return state

        elapsed = now - last
        available = state.tokens + elapsed * state.refill_rate_per_second
        available = round(available, PRECISION_DIGITS)
        available = min(available, float(state.capacity))

        return state.with_tokens_and_timestamp(available, now)

    def consume(self, state: BucketState, tokens: int) -> Optional[BucketState]:
        """Take *tokens* from the bucket.

        Returns ``None`` when not enough tokens are available. The refill
        timestamp is kept as is; only ``refill`` moves it.
        """
        if tokens < 0:
            raise ValueError("tokens to consume must be >= 0")
        if state.tokens < tokens:
            return None

        remaining = round(state.tokens - tokens, PRECISION_DIGITS)
        return state.with_tokens_and_timestamp(
            remaining, state.last_refill_timestamp,
        )


_bucket = TokenBucket()


def refill(state: BucketState, now: float) -> BucketState:
    return _bucket.refill(state, now)


def consume(state: BucketState, tokens: int) -> Optional[BucketState]:
    return _bucket.consume(state, tokens)
