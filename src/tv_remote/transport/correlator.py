"""Request/reply correlation over a message-oriented connection.

The correlator owns the pending table for one adapter. Every entry is settled
exactly once: by a matching reply, by an explicit rejection, or by its timeout
timer. Whichever happens first removes the entry and cancels the timer, so the
other outcomes find nothing to act on.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from tv_remote.const import REQUEST_TIMEOUT
from tv_remote.logging_abstraction import get_logger
from tv_remote.metrics import registry
from tv_remote.protocol.exceptions import TVRemoteError
from tv_remote.transport.exceptions import DisconnectedError, RequestTimeoutError
from tv_remote.transport.types import PendingRequest

logger = get_logger(__name__)

SendFunc = Callable[[dict[str, Any]], Awaitable[None]]


class RequestCorrelator:
    """Matches replies to outbound requests by their `id` field."""

    def __init__(self, send: SendFunc, *, label: str = "tv", default_timeout: float = REQUEST_TIMEOUT) -> None:
        """Initialize correlator.

        Args:
            send: Coroutine that transmits one payload (raises if not connected)
            label: TV type used for log context and metric labels
            default_timeout: Timeout applied when request() gets none

        """
        self._send: SendFunc = send
        self.label: str = label
        self.default_timeout: float = default_timeout
        self._pending: dict[str, PendingRequest] = {}
        self._message_id: int = 1

    def next_id(self) -> str:
        request_id = str(self._message_id)
        self._message_id += 1
        return request_id

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, request_id: str) -> bool:
        return request_id in self._pending

    async def request(self, payload: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        """Send `payload` and wait for the reply carrying the same id.

        An id is allocated when the payload has none.

        Raises:
            RequestTimeoutError: No reply within the timeout
            DisconnectedError: Connection went away while waiting, or was never there
            TVRemoteError: The peer answered with an error (see reject())

        """
        timeout = self.default_timeout if timeout is None else timeout
        request_id = str(payload.get("id") or self.next_id())
        payload["id"] = request_id

        if request_id in self._pending:
            # Fixed ids (LG register_0) may be reused by a retry
            self.reject(request_id, TVRemoteError(f"Request {request_id} superseded by a newer request"))

        loop = asyncio.get_running_loop()
        future: asyncio.Future[dict[str, Any]] = loop.create_future()
        timer = loop.call_later(timeout, self._expire, request_id)
        self._pending[request_id] = PendingRequest(
            request_id=request_id,
            future=future,
            timer=timer,
            sent_at=loop.time(),
            timeout_seconds=timeout,
        )

        try:
            await self._send(payload)
        except BaseException:
            self._discard(request_id, future)
            raise

        try:
            return await future
        except asyncio.CancelledError:
            self._discard(request_id, future)
            raise

    def resolve(self, request_id: str, reply: dict[str, Any]) -> bool:
        """Settle a pending request with its reply.

        Returns:
            False when nothing is pending under this id (late or unsolicited reply)

        """
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return False
        pending.timer.cancel()
        if pending.future.done():
            return False
        pending.future.set_result(reply)
        latency = asyncio.get_running_loop().time() - pending.sent_at
        registry.record_request(self.label, "ok", latency)
        return True

    def reject(self, request_id: str, error: BaseException) -> bool:
        """Settle a pending request with an error reply."""
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return False
        pending.timer.cancel()
        if pending.future.done():
            return False
        pending.future.set_exception(error)
        registry.record_request(self.label, "rejected")
        return True

    def reject_all(self, error: BaseException | None = None) -> int:
        """Reject every pending request and clear the table.

        Called on disconnect, before the transport is released, so no timer can
        fire against a connection that no longer exists.

        Returns:
            Number of requests rejected

        """
        error = error or DisconnectedError("Disconnected")
        pending_requests = list(self._pending.values())
        self._pending.clear()
        for pending in pending_requests:
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_exception(error)
                registry.record_request(self.label, "disconnected")
        if pending_requests:
            logger.debug(
                "Rejected %d pending request(s)",
                len(pending_requests),
                extra={"tv_type": self.label, "reason": str(error)},
            )
        return len(pending_requests)

    def _expire(self, request_id: str) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.future.done():
            return
        pending.future.set_exception(RequestTimeoutError(request_id, pending.timeout_seconds))
        registry.record_request(self.label, "timeout")
        logger.warning(
            "Request %s timed out after %.1fs",
            request_id,
            pending.timeout_seconds,
            extra={"tv_type": self.label, "request_id": request_id},
        )

    def _discard(self, request_id: str, future: asyncio.Future[dict[str, Any]]) -> None:
        # A superseded request must not remove its replacement
        pending = self._pending.get(request_id)
        if pending is not None and pending.future is future:
            del self._pending[request_id]
            pending.timer.cancel()
