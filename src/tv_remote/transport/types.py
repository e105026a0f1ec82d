"""Dataclasses for correlated request tracking."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any


@dataclass
class PendingRequest:
    """Request awaiting a reply with a matching correlation id.

    Attributes:
        request_id: Correlation id carried in the outbound payload
        future: Settled exactly once, by reply, rejection or timeout
        timer: Timeout handle; cancelled whenever the future is settled otherwise
        sent_at: loop.time() when the request was registered
        timeout_seconds: Timeout the timer was armed with

    """

    request_id: str
    future: asyncio.Future[dict[str, Any]]
    timer: asyncio.TimerHandle
    sent_at: float
    timeout_seconds: float
