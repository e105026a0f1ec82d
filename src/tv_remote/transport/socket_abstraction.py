"""Asyncio WebSocket connection with connect deadline and diagnostics."""

from __future__ import annotations

import asyncio
import contextlib
import json
import ssl
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from tv_remote.const import CONNECT_TIMEOUT, WS_LOG_PREVIEW_CHARS
from tv_remote.logging_abstraction import get_logger
from tv_remote.transport.exceptions import ConnectTimeoutError, DisconnectedError, TransportError

logger = get_logger(__name__)

MessageHandler = Callable[[dict[str, Any]], None]
CloseHandler = Callable[[], None]
LogSink = Callable[[str], None]


def unverified_ssl_context() -> ssl.SSLContext:
    """TLS context for TVs that present self-signed certificates."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


class WebSocketConnection:
    """One bidirectional JSON message connection to a TV.

    Inbound frames are read by a background task, logged, parsed and handed to
    `on_message`. `on_close` fires once when the peer (or the network) ends a
    connection that was open; it never fires for close() or for a failed open.
    """

    def __init__(
        self,
        url: str,
        *,
        on_message: MessageHandler | None = None,
        on_close: CloseHandler | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        ssl_context: ssl.SSLContext | None = None,
        log: LogSink | None = None,
    ) -> None:
        """
        Initialize connection parameters.

        Args:
            url: ws:// or wss:// endpoint
            on_message: Called with every inbound frame that parses as a JSON object
            on_close: Called when an open connection is closed by the peer
            connect_timeout: Seconds allowed for the WebSocket handshake
            ssl_context: TLS context for wss:// (None uses default verification)
            log: Diagnostic sink for frame-level lines (defaults to debug logging)
        """
        self.url = url
        self.on_message = on_message
        self.on_close = on_close
        self.connect_timeout = connect_timeout
        self.ssl_context = ssl_context
        self._log: LogSink = log or logger.debug
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._connected = False
        self._closing = False

    async def open(self) -> None:
        """
        Establish the WebSocket connection within the connect timeout.

        Raises:
            ConnectTimeoutError: Handshake did not finish in time
            TransportError: Connection refused, TLS failure, bad handshake
        """
        start_time = time.perf_counter()
        self._closing = False
        self._session = aiohttp.ClientSession()
        kwargs: dict[str, Any] = {"autoping": True}
        if self.ssl_context is not None:
            kwargs["ssl"] = self.ssl_context
        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self.url, **kwargs),
                timeout=self.connect_timeout,
            )
        except TimeoutError as e:
            await self._release()
            logger.warning(
                "Connection to %s timed out after %.1fs",
                self.url,
                self.connect_timeout,
                extra={"url": self.url, "timeout": self.connect_timeout},
            )
            raise ConnectTimeoutError(self.url, self.connect_timeout) from e
        except (aiohttp.ClientError, OSError) as e:
            await self._release()
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Connection to %s failed after %.1fms: %s",
                self.url,
                elapsed_ms,
                e,
                extra={"url": self.url, "elapsed_ms": elapsed_ms, "error_type": type(e).__name__},
            )
            raise TransportError(f"WebSocket error ({self.url}): {e}", url=self.url) from e

        self._connected = True
        self._reader_task = asyncio.create_task(self._reader(self._ws))
        logger.info(
            "Connected to %s in %.1fms",
            self.url,
            (time.perf_counter() - start_time) * 1000,
            extra={"url": self.url},
        )

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Serialize, log and send one payload.

        Raises:
            DisconnectedError: Connection is not open (nothing is queued)
            TransportError: The write failed
        """
        text = json.dumps(payload)
        self._log(f"WS send: {text[:WS_LOG_PREVIEW_CHARS]}")
        await self.send_str(text)

    async def send_str(self, text: str) -> None:
        """Send a raw text frame."""
        ws = self._ws
        if not self._connected or ws is None or ws.closed:
            raise DisconnectedError("Not connected")
        try:
            await ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise TransportError(f"Send failed ({self.url}): {e}", url=self.url) from e

    async def _reader(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._dispatch(msg.data.decode("utf-8", errors="replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("WebSocket error on %s: %s", self.url, ws.exception())
                    break
        finally:
            was_connected = self._connected
            self._connected = False
            if was_connected and not self._closing:
                logger.info("Connection to %s closed by peer", self.url, extra={"close_code": ws.close_code})
                await self._release()
                if self.on_close is not None:
                    self.on_close()

    def _dispatch(self, raw: str) -> None:
        self._log(f"WS recv: {raw[:WS_LOG_PREVIEW_CHARS]}")
        try:
            data = json.loads(raw)
        except ValueError as e:
            self._log(f"WS parse error: {e}")
            return
        if not isinstance(data, dict):
            self._log(f"WS parse error: expected an object, got {type(data).__name__}")
            return
        if self.on_message is not None:
            self.on_message(data)

    async def close(self) -> None:
        """Close the connection without firing on_close."""
        self._closing = True
        self._connected = False
        task = self._reader_task
        self._reader_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._release()

    async def _release(self) -> None:
        ws, session = self._ws, self._session
        self._ws = None
        self._session = None
        if ws is not None and not ws.closed:
            try:
                await ws.close()
            except (aiohttp.ClientError, OSError) as e:
                logger.warning(
                    "Error closing connection: %s",
                    e,
                    extra={"url": self.url, "error_type": type(e).__name__},
                )
        if session is not None and not session.closed:
            await session.close()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"WebSocketConnection({self.url}, {status})"
