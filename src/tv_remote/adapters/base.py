"""Base remote-control contract shared by every TV adapter.

TVController owns the connection lifecycle: connection state, the main
transport, the request correlator, the reconnect policy and every background
task an adapter starts. Subclasses implement `_connect()`, `_send_command()`
and `_handle_message()`, and override the optional operations their protocol
supports.
"""

from __future__ import annotations

import asyncio
import contextlib
import ssl
from collections.abc import Callable, Coroutine, Mapping
from typing import Any, ClassVar, Generic, TypeVar

from tv_remote.const import CONNECT_TIMEOUT, REQUEST_TIMEOUT
from tv_remote.correlation import operation_context
from tv_remote.instrumentation import timed_async
from tv_remote.logging_abstraction import get_logger
from tv_remote.metrics import registry
from tv_remote.protocol.commands import Command, parse_command
from tv_remote.protocol.exceptions import (
    TVConnectionStateError,
    TVRemoteError,
    UnsupportedOperationError,
)
from tv_remote.storage import ConfigStore
from tv_remote.structs import AppInfo, ConnectionState, TVConfigBase, TVState, TVType
from tv_remote.transport.correlator import RequestCorrelator
from tv_remote.transport.exceptions import DisconnectedError
from tv_remote.transport.retry_policy import ReconnectPolicy
from tv_remote.transport.socket_abstraction import WebSocketConnection

logger = get_logger(__name__)

StateCallback = Callable[[dict[str, Any]], None]
EventCallback = Callable[[], None]
MessageCallback = Callable[[str], None]
ConnectionFactory = Callable[..., WebSocketConnection]

ConfigT = TypeVar("ConfigT", bound=TVConfigBase)


class TVController(Generic[ConfigT]):
    """Unified command interface over one TV protocol."""

    tv_type: ClassVar[TVType]

    def __init__(
        self,
        config: ConfigT,
        *,
        store: ConfigStore | None = None,
        connection_factory: ConnectionFactory | None = None,
        reconnect_policy: ReconnectPolicy | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        request_timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Connection settings; issued tokens/keys are written back onto it
            store: Where to persist the config when a token/key is issued
            connection_factory: Builds WebSocketConnection-compatible transports
            reconnect_policy: Reconnect budget (defaults to the configured constants)
            connect_timeout: Seconds allowed for each transport open
            request_timeout: Default timeout for correlated requests

        """
        self.config: ConfigT = config
        self.store: ConfigStore | None = store
        self.connection_factory: ConnectionFactory = connection_factory or WebSocketConnection
        self.reconnect_policy: ReconnectPolicy = reconnect_policy or ReconnectPolicy()
        self.connect_timeout: float = connect_timeout
        self.correlator: RequestCorrelator = RequestCorrelator(
            self._send_json,
            label=self.tv_type.value,
            default_timeout=request_timeout,
        )

        self.connection_state: ConnectionState = ConnectionState.DISCONNECTED
        self.tv_state: TVState = TVState()
        self.transport: WebSocketConnection | None = None
        self.reconnect_task: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()

        self._connecting: bool = False
        self._intentional_disconnect: bool = False
        self._suppress_reconnect: bool = False
        # on_disconnect only follows an on_connect
        self._announced: bool = False

        self._state_callback: StateCallback | None = None
        self._connect_callback: EventCallback | None = None
        self._disconnect_callback: EventCallback | None = None
        self._error_callback: MessageCallback | None = None
        self._log_callback: MessageCallback | None = None

    # --- Event registration (last registration wins) ---

    def on_state_change(self, callback: StateCallback | None) -> None:
        self._state_callback = callback

    def on_connect(self, callback: EventCallback | None) -> None:
        self._connect_callback = callback

    def on_disconnect(self, callback: EventCallback | None) -> None:
        self._disconnect_callback = callback

    def on_error(self, callback: MessageCallback | None) -> None:
        self._error_callback = callback

    def on_log(self, callback: MessageCallback | None) -> None:
        self._log_callback = callback

    def _invoke(self, name: str, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("%s callback raised", name, extra={"tv_type": self.tv_type.value})

    def _emit_state(self, partial: Mapping[str, Any]) -> None:
        """Merge a partial update into tv_state and forward it to the host."""
        self.tv_state.merge(partial)
        self._invoke("on_state_change", self._state_callback, dict(partial))

    def _emit_error(self, message: str) -> None:
        logger.warning("%s", message, extra={"tv_type": self.tv_type.value})
        self._invoke("on_error", self._error_callback, message)

    def _fire_connect(self) -> None:
        self._announced = True
        self._invoke("on_connect", self._connect_callback)

    def _fire_disconnect(self) -> None:
        if not self._announced:
            return
        self._announced = False
        self._invoke("on_disconnect", self._disconnect_callback)

    def _log(self, message: str) -> None:
        """Diagnostic line for both the module logger and the host's log view."""
        logger.info("%s", message, extra={"tv_type": self.tv_type.value})
        self._invoke("on_log", self._log_callback, message)

    def _trace(self, message: str) -> None:
        """Frame-level diagnostic line (logged at debug)."""
        logger.debug("%s", message, extra={"tv_type": self.tv_type.value})
        self._invoke("on_log", self._log_callback, message)

    # --- Connection state ---

    @property
    def connected(self) -> bool:
        return self.connection_state == ConnectionState.CONNECTED

    def _set_state(self, state: ConnectionState) -> None:
        if state != self.connection_state:
            logger.debug(
                "Connection state %s -> %s",
                self.connection_state.value,
                state.value,
                extra={"tv_type": self.tv_type.value},
            )
        self.connection_state = state
        registry.record_connection_state(self.tv_type.value, state.value)

    def _require_connected(self) -> None:
        if not self.connected:
            raise DisconnectedError("Not connected")

    def _abort_if_disconnected(self) -> None:
        """Stop an in-flight connect() once disconnect() has been called."""
        if self._intentional_disconnect:
            raise DisconnectedError("Disconnected while connecting")

    def _persist_config(self) -> None:
        if self.store is None:
            return
        data = self.config.storage_dict()
        try:
            self.store.save(self.tv_type.value, data)
        except OSError as e:
            logger.warning(
                "Failed to persist %s config: %s",
                self.tv_type.value,
                e,
                extra={"tv_type": self.tv_type.value, "error_type": type(e).__name__},
            )

    # --- Background tasks ---

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=f"{self.tv_type.value}:{name}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    @staticmethod
    async def _cancel_task(task: asyncio.Task[Any] | None) -> None:
        # Never cancel the task doing the teardown (reconnect/poll tasks tear down too)
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _cancel_background_tasks(self) -> None:
        self.reconnect_task = None
        for task in list(self._background_tasks):
            await self._cancel_task(task)

    # --- Transport ownership ---

    async def _open_transport(
        self,
        url: str,
        *,
        suppress_reconnect: bool = False,
        announce: bool = True,
        ssl_context: ssl.SSLContext | None = None,
    ) -> WebSocketConnection:
        """Open the main transport.

        Args:
            url: Endpoint to open
            suppress_reconnect: Do not reconnect automatically when this transport drops
            announce: Flip to CONNECTED and fire on_connect as soon as it opens
            ssl_context: TLS context for wss:// URLs

        Raises:
            ConnectTimeoutError: Open did not complete in time
            TransportError: Open failed

        """
        conn: WebSocketConnection | None = None

        def closed() -> None:
            if conn is not None:
                self._handle_transport_closed(conn)

        self._log(f"Connecting to {url}")
        conn = self.connection_factory(
            url,
            on_message=self._dispatch_message,
            on_close=closed,
            connect_timeout=self.connect_timeout,
            ssl_context=ssl_context,
            log=self._trace,
        )
        await conn.open()
        if self._intentional_disconnect:
            await conn.close()
            self._abort_if_disconnected()

        self.transport = conn
        self._suppress_reconnect = suppress_reconnect
        self.reconnect_policy.reset()
        if announce:
            self._set_state(ConnectionState.CONNECTED)
            self._fire_connect()
        return conn

    async def _send_json(self, payload: dict[str, Any]) -> None:
        if self.transport is None:
            raise DisconnectedError("Not connected")
        await self.transport.send_json(payload)

    def _dispatch_message(self, data: dict[str, Any]) -> None:
        try:
            self._handle_message(data)
        except Exception:
            logger.exception("Error handling inbound message", extra={"tv_type": self.tv_type.value})

    def _handle_transport_closed(self, conn: WebSocketConnection) -> None:
        if conn is not self.transport:
            return
        self.transport = None
        self._log("Connection closed")
        self.correlator.reject_all(DisconnectedError("Connection closed"))
        self._on_transport_lost()
        self._set_state(ConnectionState.DISCONNECTED)
        self._fire_disconnect()
        if not self._intentional_disconnect and not self._suppress_reconnect:
            self._schedule_reconnect()

    def _on_transport_lost(self) -> None:
        """Hook for subclasses to drop per-connection tables after an unsolicited close."""

    # --- Reconnect ---

    def _schedule_reconnect(self) -> None:
        delay = self.reconnect_policy.next_delay()
        if delay is None:
            registry.record_reconnect_attempt(self.tv_type.value, "exhausted")
            self._log(f"Giving up after {self.reconnect_policy.max_attempts} reconnect attempts")
            return
        self._set_state(ConnectionState.RECONNECTING)
        self._log(
            f"Reconnecting in {delay:.0f}s "
            f"(attempt {self.reconnect_policy.attempts}/{self.reconnect_policy.max_attempts})"
        )
        self.reconnect_task = self._spawn(self._reconnect_after(delay), "reconnect")

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._intentional_disconnect or self.connected or self._connecting:
            return
        try:
            await self.connect()
        except TVRemoteError as e:
            registry.record_reconnect_attempt(self.tv_type.value, "failed")
            self._log(f"Reconnect failed: {e}")
            if not self._intentional_disconnect:
                self._schedule_reconnect()
        else:
            registry.record_reconnect_attempt(self.tv_type.value, "success")

    # --- Lifecycle ---

    async def connect(self) -> None:
        """Open (or re-open) the connection to the TV.

        Raises:
            TVConnectionStateError: Another connect() is in flight
            TVRemoteError: Protocol-specific connection failure

        """
        if self._connecting:
            raise TVConnectionStateError("connect() already in progress", self.connection_state.value)
        self._connecting = True
        try:
            with operation_context():
                if self.transport is not None or self.connection_state != ConnectionState.DISCONNECTED:
                    await self._teardown(fire_disconnect=True)
                self._intentional_disconnect = False
                self._set_state(ConnectionState.CONNECTING)
                try:
                    await self._timed_connect()
                    self._abort_if_disconnected()
                except TVRemoteError as e:
                    aborted = self._intentional_disconnect
                    await self._teardown(fire_disconnect=aborted)
                    self._set_state(ConnectionState.DISCONNECTED)
                    if not aborted:
                        self._emit_error(str(e))
                    raise
        finally:
            self._connecting = False

    @timed_async("tv_connect")
    async def _timed_connect(self) -> None:
        await self._connect()

    async def _connect(self) -> None:
        raise NotImplementedError

    async def disconnect(self) -> None:
        """Close the connection; no reconnect follows."""
        self._intentional_disconnect = True
        await self._teardown(fire_disconnect=True)
        self._log("Disconnected")

    async def _teardown(self, *, fire_disconnect: bool) -> None:
        """Cancel timers, reject pending requests, release the transport."""
        await self._cancel_background_tasks()
        self.correlator.reject_all(DisconnectedError("Disconnected"))
        await self._release_resources()
        transport = self.transport
        self.transport = None
        if transport is not None:
            await transport.close()
        self._set_state(ConnectionState.DISCONNECTED)
        if fire_disconnect:
            self._fire_disconnect()

    async def _release_resources(self) -> None:
        """Hook for subclasses holding extra sockets or HTTP sessions."""

    async def wait_until_ready(self) -> None:
        """Wait for setup that continues in the background after connect() returns."""

    # --- Commands ---

    async def send_command(self, command: Command | str) -> None:
        """Send one key from the shared vocabulary.

        Raises:
            UnknownCommandError: Not in the vocabulary or not mapped for this TV (nothing is sent)
            DisconnectedError: Not connected

        """
        cmd = parse_command(command, self.tv_type.value)
        with operation_context():
            await self._timed_command(cmd)

    @timed_async("tv_command")
    async def _timed_command(self, command: Command) -> None:
        try:
            await self._send_command(command)
        except TVRemoteError:
            registry.record_command(self.tv_type.value, command.value, "error")
            raise
        registry.record_command(self.tv_type.value, command.value, "ok")

    async def _send_command(self, command: Command) -> None:
        raise NotImplementedError

    def _handle_message(self, data: dict[str, Any]) -> None:
        """Handle one inbound JSON frame from the main transport."""

    async def power(self) -> None:
        await self.send_command(Command.POWER)

    async def volume_up(self) -> None:
        await self.send_command(Command.VOLUME_UP)

    async def volume_down(self) -> None:
        await self.send_command(Command.VOLUME_DOWN)

    async def mute(self) -> None:
        await self.send_command(Command.MUTE)

    async def channel_up(self) -> None:
        await self.send_command(Command.CHANNEL_UP)

    async def channel_down(self) -> None:
        await self.send_command(Command.CHANNEL_DOWN)

    async def up(self) -> None:
        await self.send_command(Command.UP)

    async def down(self) -> None:
        await self.send_command(Command.DOWN)

    async def left(self) -> None:
        await self.send_command(Command.LEFT)

    async def right(self) -> None:
        await self.send_command(Command.RIGHT)

    async def ok(self) -> None:
        await self.send_command(Command.OK)

    async def back(self) -> None:
        await self.send_command(Command.BACK)

    async def home(self) -> None:
        await self.send_command(Command.HOME)

    async def menu(self) -> None:
        await self.send_command(Command.MENU)

    async def play(self) -> None:
        await self.send_command(Command.PLAY)

    async def pause(self) -> None:
        await self.send_command(Command.PAUSE)

    async def stop(self) -> None:
        await self.send_command(Command.STOP)

    # --- Optional operations ---

    async def get_apps(self) -> list[AppInfo]:
        return []

    async def get_inputs(self) -> list[dict[str, Any]]:
        return []

    async def get_state(self) -> TVState | None:
        return None

    async def launch_app(self, app_id: str, params: Mapping[str, Any] | None = None) -> None:
        raise UnsupportedOperationError("launch_app", self.tv_type.value)

    async def send_text(self, text: str) -> None:
        raise UnsupportedOperationError("send_text", self.tv_type.value)

    async def open_youtube(self, video_id: str) -> None:
        raise UnsupportedOperationError("open_youtube", self.tv_type.value)

    async def switch_input(self, input_id: str) -> None:
        raise UnsupportedOperationError("switch_input", self.tv_type.value)

    async def set_volume(self, level: int) -> None:
        raise UnsupportedOperationError("set_volume", self.tv_type.value)

    async def repair(self) -> None:
        raise UnsupportedOperationError("repair", self.tv_type.value)

    def _discovery_failed(self, kind: str, error: BaseException) -> list[Any]:
        """Best-effort discovery gave up: log it, count it, report nothing found."""
        registry.record_discovery_failure(self.tv_type.value, kind)
        self._log(f"Failed to get {kind}: {error}")
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection_state.value})"
