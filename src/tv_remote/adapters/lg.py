"""LG WebOS adapter: SSAP over WebSocket, or a trusted proxy backend.

Direct mode walks Connecting -> Registering -> Connected. The transport being
open is not enough: the host is told "connected" only after the TV accepted
the registration (a person has to confirm the prompt on screen). After that
the adapter subscribes to volume, foreground app and channel, and opens the
pointer input socket that carries d-pad buttons.

Proxy mode replaces all of that with HTTP calls to a backend that owns the TV
connection, plus a state poll, because the backend does not push events.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, ClassVar

from tv_remote.adapters.base import TVController
from tv_remote.adapters.lg_manifest import POINTER_SOCKET_ID, REGISTER_ID, build_registration_request
from tv_remote.adapters.lg_proxy import ProxyBackendClient
from tv_remote.const import HTTP_TIMEOUT, POLL_INTERVAL, REGISTRATION_TIMEOUT
from tv_remote.metrics import registry
from tv_remote.protocol.commands import Command
from tv_remote.protocol.exceptions import (
    RegistrationFailedError,
    TVRemoteError,
    UnknownCommandError,
    UnsupportedOperationError,
)
from tv_remote.protocol.keymaps import (
    LG_COMMAND_URIS,
    LG_POINTER_BUTTONS,
    LG_STATE_SUBSCRIPTIONS,
    LG_URI_CURRENT_CHANNEL,
    LG_URI_FOREGROUND_APP,
    LG_URI_INPUT_LIST,
    LG_URI_INSERT_TEXT,
    LG_URI_LAUNCH,
    LG_URI_LIST_APPS,
    LG_URI_POINTER_SOCKET,
    LG_URI_SET_VOLUME,
    LG_URI_SWITCH_INPUT,
    LG_URI_VOLUME,
)
from tv_remote.structs import AppInfo, ConnectionState, LGConfig, TVState, TVType, parse_apps
from tv_remote.transport.exceptions import ProxyBackendError, TransportError
from tv_remote.transport.socket_abstraction import WebSocketConnection, unverified_ssl_context

YOUTUBE_APP_ID = "youtube.leanback.v4"
DEFAULT_PORT = 3000
DEFAULT_SECURE_PORT = 3001


class LGAdapter(TVController[LGConfig]):
    tv_type: ClassVar[TVType] = TVType.LG

    def __init__(
        self,
        config: LGConfig,
        *,
        registration_timeout: float = REGISTRATION_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        http_timeout: float = HTTP_TIMEOUT,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, **kwargs)
        self.registration_timeout: float = registration_timeout
        self.poll_interval: float = poll_interval
        self.http_timeout: float = http_timeout

        # Direct mode
        self.subscriptions: dict[str, str] = {}
        self.input_socket: WebSocketConnection | None = None
        self.setup_task: asyncio.Task[None] | None = None

        # Proxy mode
        self.proxy: ProxyBackendClient | None = None
        self.poll_task: asyncio.Task[None] | None = None

    @property
    def proxy_mode(self) -> bool:
        return self.config.proxy_mode

    def _proxy_client(self) -> ProxyBackendClient:
        if self.proxy is None:
            assert self.config.proxy_base_url is not None
            self.proxy = ProxyBackendClient(self.config.proxy_base_url, timeout=self.http_timeout)
        return self.proxy

    def _adopt_client_key(self, client_key: object) -> None:
        """Take a freshly issued key; an absent key never clears the stored one."""
        if not client_key:
            return
        key = str(client_key)
        self._log(f"Client key received: {key[:8]}...")
        self.config.client_key = key
        self._persist_config()
        self._emit_state({"client_key": key})

    async def _connect(self) -> None:
        if self.proxy_mode:
            await self._connect_proxy()
        else:
            await self._connect_direct()

    # --- Direct mode ---

    def endpoint_variants(self) -> list[str]:
        port = self.config.port
        secure_port = DEFAULT_SECURE_PORT if port == DEFAULT_PORT else port
        return [f"ws://{self.config.ip}:{port}", f"wss://{self.config.ip}:{secure_port}"]

    async def _connect_direct(self) -> None:
        self._log("No proxy backend URL, trying direct connection")
        last_error: TVRemoteError | None = None
        registration_reached = False

        for url in self.endpoint_variants():
            ssl_context = unverified_ssl_context() if url.startswith("wss://") else None
            try:
                await self._open_transport(url, suppress_reconnect=True, announce=False, ssl_context=ssl_context)
            except TransportError as e:
                self._log(f"Connection failed: {e}")
                last_error = e
                continue
            self._log(f"WebSocket connected ({url})")

            registration_reached = True
            self._set_state(ConnectionState.REGISTERING)
            self._log(f"Check TV screen for pairing prompt (accept within {self.registration_timeout:.0f}s)")
            try:
                reply = await self._register()
            except TVRemoteError as e:
                registry.record_registration("direct", "failed")
                self._abort_if_disconnected()
                self._log(f"Registration failed: {e}")
                last_error = e
                await self._close_main_transport()
                continue

            self._abort_if_disconnected()
            self._on_registered(reply)
            return

        tried = " and ".join(self.endpoint_variants())
        message = (
            f"Could not connect to TV at {self.config.ip}. Tried {tried}. "
            f"This TV likely requires proxy mode, configure a proxy backend URL."
        )
        if registration_reached:
            raise RegistrationFailedError(message) from last_error
        raise TransportError(message, url=self.endpoint_variants()[0]) from last_error

    async def _register(self) -> dict[str, Any]:
        return await self.correlator.request(
            build_registration_request(self.config.client_key),
            timeout=self.registration_timeout,
        )

    def _on_registered(self, reply: Mapping[str, Any]) -> None:
        payload = reply.get("payload")
        if isinstance(payload, Mapping):
            self._adopt_client_key(payload.get("client-key"))
        registry.record_registration("direct", "success")
        self._log("Registration complete")
        self._set_state(ConnectionState.CONNECTED)
        self._emit_state({"power": True, "connected": True, "paired": True, "pairing_prompt": False})
        self._fire_connect()
        self.setup_task = self._spawn(self._post_registration_setup(), "setup")

    async def _close_main_transport(self) -> None:
        transport = self.transport
        self.transport = None
        self.correlator.reject_all()
        if transport is not None:
            await transport.close()

    async def wait_until_ready(self) -> None:
        if self.setup_task is not None:
            _ = await asyncio.wait({self.setup_task})

    async def _post_registration_setup(self) -> None:
        await self._subscribe_to_state()
        await self._open_input_socket()

    async def _subscribe_to_state(self) -> None:
        requests = []
        for uri in LG_STATE_SUBSCRIPTIONS:
            request_id = self.correlator.next_id()
            self.subscriptions[request_id] = uri
            requests.append(self.correlator.request({"type": "subscribe", "id": request_id, "uri": uri}))
        results = await asyncio.gather(*requests, return_exceptions=True)
        for uri, result in zip(LG_STATE_SUBSCRIPTIONS, results, strict=True):
            if isinstance(result, TVRemoteError):
                self._log(f"Subscribe to {uri} failed: {result}")
            elif isinstance(result, BaseException):
                raise result

    async def _open_input_socket(self) -> None:
        try:
            reply = await self.correlator.request(
                {"type": "request", "id": POINTER_SOCKET_ID, "uri": LG_URI_POINTER_SOCKET}
            )
        except TVRemoteError as e:
            self._log(f"Pointer input socket unavailable: {e}")
            return
        payload = reply.get("payload")
        socket_path = payload.get("socketPath") if isinstance(payload, Mapping) else None
        if not socket_path:
            self._log("TV did not return a pointer input socket path")
            return

        conn: WebSocketConnection | None = None

        def closed() -> None:
            if conn is not None and conn is self.input_socket:
                self.input_socket = None
                self._log("Pointer input socket closed")
                self._emit_state({"input_socket_connected": False, "dpad_ready": False})

        ssl_context = unverified_ssl_context() if str(socket_path).startswith("wss://") else None
        conn = self.connection_factory(
            str(socket_path),
            on_close=closed,
            connect_timeout=self.connect_timeout,
            ssl_context=ssl_context,
            log=self._trace,
        )
        try:
            await conn.open()
        except TransportError as e:
            self._log(f"Pointer input socket failed: {e}")
            return
        self.input_socket = conn
        self._log("Pointer input socket connected")
        self._emit_state({"input_socket_connected": True, "dpad_ready": True})

    def _handle_message(self, data: dict[str, Any]) -> None:
        msg_type = data.get("type")
        request_id = str(data.get("id") or "")
        raw_payload = data.get("payload")
        payload: Mapping[str, Any] = raw_payload if isinstance(raw_payload, Mapping) else {}

        if request_id == REGISTER_ID:
            if msg_type == "response" and payload.get("pairingType") == "PROMPT":
                self._log("Pairing prompt shown on TV")
                self._emit_state({"pairing_prompt": True})
            elif msg_type == "registered":
                self.correlator.resolve(request_id, data)
            elif msg_type == "error":
                self.correlator.reject(
                    request_id,
                    RegistrationFailedError(str(data.get("error") or "Registration rejected by TV")),
                )
            return

        uri = self.subscriptions.get(request_id)
        if uri is not None and msg_type in ("response", "changed"):
            self._apply_subscription(uri, payload)

        if msg_type == "error":
            self.correlator.reject(request_id, TVRemoteError(str(data.get("error") or "Request failed")))
        elif request_id:
            self.correlator.resolve(request_id, data)

    def _apply_subscription(self, uri: str, payload: Mapping[str, Any]) -> None:
        update: dict[str, Any] = {"power": True}
        if uri == LG_URI_VOLUME:
            # webOS 5+ nests the values under volumeStatus
            status = payload.get("volumeStatus")
            source = status if isinstance(status, Mapping) else payload
            if source.get("volume") is not None:
                update["volume"] = source["volume"]
            muted = source.get("muted", source.get("muteStatus"))
            if muted is not None:
                update["muted"] = bool(muted)
        elif uri == LG_URI_FOREGROUND_APP:
            update["app"] = payload.get("appId") or None
        elif uri == LG_URI_CURRENT_CHANNEL:
            update["source"] = payload.get("channelName") or payload.get("channelNumber") or None
        self._emit_state(update)

    async def _send_request(self, uri: str, payload: Mapping[str, Any] | None = None) -> None:
        self._require_connected()
        await self._send_json(
            {"type": "request", "id": self.correlator.next_id(), "uri": uri, "payload": dict(payload or {})}
        )

    def _on_transport_lost(self) -> None:
        self.subscriptions.clear()
        if self.setup_task is not None:
            self.setup_task.cancel()
            self.setup_task = None
        if self.input_socket is not None:
            self._spawn(self._close_input_socket(), "close-input")

    async def _close_input_socket(self) -> None:
        conn = self.input_socket
        self.input_socket = None
        if conn is not None:
            await conn.close()
            self._emit_state({"input_socket_connected": False, "dpad_ready": False})

    # --- Proxy mode ---

    async def _connect_proxy(self) -> None:
        proxy = self._proxy_client()
        self._log(f"Using proxy via {self.config.proxy_base_url}")
        self._log(f"Connecting to TV at {self.config.ip}")
        try:
            data = await proxy.post(
                "connect",
                ip=self.config.ip,
                port=self.config.port,
                clientKey=self.config.client_key,
                haEntityId=self.config.remote_entity_id,
            )
        except ProxyBackendError as e:
            registry.record_registration("proxy", "failed")
            raise ProxyBackendError(
                f"Proxy connection failed: {e.reason}. "
                f"Make sure the proxy backend is running at {self.config.proxy_base_url}.",
                action="connect",
                url=e.url,
                status=e.status,
            ) from e

        self._abort_if_disconnected()
        registry.record_registration("proxy", "success")
        self._log("Connected and registered via proxy")
        self._adopt_client_key(data.get("clientKey"))
        self._set_state(ConnectionState.CONNECTED)
        self._emit_state({"power": True, "connected": True, "paired": True})
        self._start_polling()
        self._fire_connect()

    def _start_polling(self) -> None:
        self.poll_task = self._spawn(self._poll_loop(), "poll")

    async def _stop_polling(self) -> None:
        task = self.poll_task
        self.poll_task = None
        await self._cancel_task(task)

    async def _poll_loop(self) -> None:
        proxy = self._proxy_client()
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                status = await proxy.get_status()
            except ProxyBackendError as e:
                registry.record_proxy_poll("error")
                self._trace(f"State poll failed: {e}")
                continue
            registry.record_proxy_poll("ok")

            state = status.get("state")
            if isinstance(state, Mapping):
                update = dict(state)
                update["input_socket_connected"] = bool(status.get("inputSocketConnected"))
                update["dpad_ready"] = bool(status.get("dpadReady"))
                update["remote_fallback"] = bool(status.get("haFallback"))
                self._emit_state(update)

            if not status.get("connected") or not status.get("registered"):
                self._log("Proxy reports the TV is no longer connected")
                self.poll_task = None
                self._set_state(ConnectionState.DISCONNECTED)
                self._fire_disconnect()
                return

    async def repair(self) -> None:
        """Make the backend pair from scratch, for TVs that silently revoked their key.

        Polling is paused for the duration so the transient unregistered state
        is not taken for a disconnect.
        """
        if not self.proxy_mode:
            raise UnsupportedOperationError("repair", self.tv_type.value, "only available in proxy mode")
        proxy = self._proxy_client()
        self._log("Re-pairing: accept the pairing prompt on your TV")
        await self._stop_polling()
        try:
            data = await proxy.post("repaire")
            registry.record_registration("proxy_repair", "success")
            self._log("Re-pair complete")
            self._adopt_client_key(data.get("clientKey"))
            if not self.connected:
                self._set_state(ConnectionState.CONNECTED)
                self._emit_state({"connected": True, "paired": True})
                self._fire_connect()
        except ProxyBackendError:
            registry.record_registration("proxy_repair", "failed")
            raise
        finally:
            self._start_polling()

    # --- Teardown ---

    async def _release_resources(self) -> None:
        self.subscriptions.clear()
        self.setup_task = None
        await self._close_input_socket()
        if self.proxy is not None:
            if self.proxy_mode and self.connection_state == ConnectionState.CONNECTED:
                try:
                    await self.proxy.post("disconnect")
                except ProxyBackendError as e:
                    self._log(f"Proxy disconnect failed: {e}")
            await self.proxy.close()
            self.proxy = None
        self.poll_task = None

    # --- Commands ---

    async def _send_command(self, command: Command) -> None:
        if self.proxy_mode:
            self._require_connected()
            await self._proxy_client().post("command", command=command.value)
            return

        button = LG_POINTER_BUTTONS.get(command)
        uri = LG_COMMAND_URIS.get(command)
        if button is None and uri is None:
            raise UnknownCommandError(command.value, self.tv_type.value)
        self._require_connected()

        if button is not None:
            if self.input_socket is None or not self.input_socket.is_connected:
                raise TransportError("Input socket not connected")
            await self.input_socket.send_str(f"type:button\nname:{button}\n\n")
            return

        assert uri is not None
        payload = {"mute": not self.tv_state.muted} if command == Command.MUTE else {}
        await self._send_request(uri, payload)

    async def get_apps(self) -> list[AppInfo]:
        try:
            self._require_connected()
            if self.proxy_mode:
                data = await self._proxy_client().post("apps")
                return parse_apps(data.get("apps"))
            reply = await self.correlator.request({"type": "request", "uri": LG_URI_LIST_APPS})
        except TVRemoteError as e:
            return self._discovery_failed("apps", e)
        payload = reply.get("payload")
        return parse_apps(payload.get("apps") if isinstance(payload, Mapping) else None)

    async def get_inputs(self) -> list[dict[str, Any]]:
        try:
            self._require_connected()
            if self.proxy_mode:
                data = await self._proxy_client().post("inputs")
                inputs = data.get("inputs")
            else:
                reply = await self.correlator.request({"type": "request", "uri": LG_URI_INPUT_LIST})
                payload = reply.get("payload")
                inputs = payload.get("devices") if isinstance(payload, Mapping) else None
        except TVRemoteError as e:
            return self._discovery_failed("inputs", e)
        return [dict(item) for item in inputs if isinstance(item, Mapping)] if isinstance(inputs, list) else []

    async def switch_input(self, input_id: str) -> None:
        self._require_connected()
        if self.proxy_mode:
            await self._proxy_client().post("switchInput", inputId=input_id)
            return
        await self._send_request(LG_URI_SWITCH_INPUT, {"inputId": input_id})

    async def launch_app(self, app_id: str, params: Mapping[str, Any] | None = None) -> None:
        self._require_connected()
        params = params or {}
        if self.proxy_mode:
            await self._proxy_client().post("launch", appId=app_id, params=dict(params))
            return
        payload: dict[str, Any] = {"id": app_id}
        if params.get("contentId"):
            payload["contentId"] = params["contentId"]
        if params.get("params"):
            payload["params"] = params["params"]
        await self._send_request(LG_URI_LAUNCH, payload)

    async def send_text(self, text: str) -> None:
        self._require_connected()
        if self.proxy_mode:
            await self._proxy_client().post("text", text=text)
            return
        await self._send_request(LG_URI_INSERT_TEXT, {"text": text, "replace": 0})

    async def open_youtube(self, video_id: str) -> None:
        await self.launch_app(YOUTUBE_APP_ID, {"contentId": video_id})

    async def set_volume(self, level: int) -> None:
        self._require_connected()
        if self.proxy_mode:
            await self._proxy_client().post("volume", level=level)
            return
        await self._send_request(LG_URI_SET_VOLUME, {"volume": level})

    async def get_state(self) -> TVState:
        if self.proxy_mode and self.connected:
            try:
                status = await self._proxy_client().get_status()
            except ProxyBackendError as e:
                self._trace(f"State request failed: {e}")
            else:
                state = status.get("state")
                if isinstance(state, Mapping):
                    self.tv_state.merge(state)
        return self.tv_state.snapshot()
