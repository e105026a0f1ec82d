"""Reconnect policy for persistent TV connections."""

from __future__ import annotations

from tv_remote.const import MAX_RECONNECT_ATTEMPTS, RECONNECT_DELAY


class ReconnectPolicy:
    """Fixed-delay reconnect budget.

    Each unsolicited disconnect (or failed reconnect) consumes one attempt;
    a successful open resets the budget. Once exhausted, next_delay() returns
    None and the adapter stays disconnected until the caller connects again.
    """

    def __init__(
        self,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        delay_seconds: float = RECONNECT_DELAY,
    ) -> None:
        self.max_attempts: int = max_attempts
        self.delay_seconds: float = delay_seconds
        self.attempts: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def next_delay(self) -> float | None:
        """Consume one attempt and return its delay, or None when out of budget."""
        if self.exhausted:
            return None
        self.attempts += 1
        return self.delay_seconds

    def reset(self) -> None:
        self.attempts = 0

    def __repr__(self) -> str:
        return (
            f"ReconnectPolicy(attempts={self.attempts}/{self.max_attempts}, "
            f"delay={self.delay_seconds}s)"
        )
