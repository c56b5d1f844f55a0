"""
Backoff schedules for RPC retries, resubmission and confirmation windows.

A RetryPolicy says how many retries an operation gets and how long to sleep
before each one. Delays grow as base * 2**(attempt-1), capped at max_delay,
with one of the usual jitter strategies applied on top:

- full        : U(0, cap)
- equal       : cap/2 + U(0, cap/2)
- decorrelated: U(base, prev*3), capped (needs a BackoffState per operation)
- none        : cap

    policy = RetryPolicy.from_config(config)
    for attempt in range(1, policy.retries + 2):
        ...
        await asyncio.sleep(policy.delay(attempt))
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Literal, Optional

if TYPE_CHECKING:
    from ..config import SDKConfig

__all__ = ["JitterMode", "BackoffState", "RetryPolicy", "backoff_delay"]

JitterMode = Literal["full", "equal", "decorrelated", "none"]


class BackoffState:
    """Previous delay, carried between attempts for decorrelated jitter."""

    __slots__ = ("prev_delay",)

    def __init__(self) -> None:
        self.prev_delay: float = 0.0


def backoff_delay(
    attempt: int,
    *,
    base: float,
    max_delay: float,
    jitter: JitterMode = "full",
    state: Optional[BackoffState] = None,
) -> float:
    """Seconds to sleep before retry number `attempt` (1-based)."""
    cap = min(base * (2 ** (max(attempt, 1) - 1)), max_delay)
    if jitter == "none":
        return float(cap)
    if jitter == "full":
        return random.uniform(0.0, cap)
    if jitter == "equal":
        return cap / 2 + random.uniform(0.0, cap / 2)
    if jitter == "decorrelated":
        state = state or BackoffState()
        high = state.prev_delay * 3.0 if state.prev_delay > 0 else base
        state.prev_delay = min(random.uniform(base, max(base, high)), max_delay)
        return state.prev_delay
    raise ValueError(f"unknown jitter mode: {jitter}")


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 3
    base: float = 0.25
    max_delay: float = 4.0
    jitter: JitterMode = "full"

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.base < 0 or self.max_delay < 0:
            raise ValueError("backoff delays must be >= 0")

    @classmethod
    def from_config(cls, config: "SDKConfig") -> "RetryPolicy":
        return cls(
            retries=config.max_retries,
            base=config.backoff_base,
            max_delay=config.backoff_max,
        )

    def delay(self, attempt: int, state: Optional[BackoffState] = None) -> float:
        return backoff_delay(
            attempt, base=self.base, max_delay=self.max_delay, jitter=self.jitter, state=state
        )

    def exhausted(self, failures: int) -> bool:
        """True once `failures` consecutive failures leave no retry."""
        return failures > self.retries

    def delays(self) -> Iterator[float]:
        """The full schedule, one delay per allowed retry."""
        state = BackoffState() if self.jitter == "decorrelated" else None
        for attempt in range(1, self.retries + 1):
            yield self.delay(attempt, state)
