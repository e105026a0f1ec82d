"""Android TV through a user-run REST bridge (ADB keyevents over HTTP).

Bridge API:
    GET  /state    -> {power, volume, app, ...}
    POST /command  {key: "KEYCODE_..."}
    GET  /apps     -> [{id, name, icon}]
    POST /launch   {appId, intentUri?}
    POST /text     {text}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from tv_remote.adapters.base import TVController
from tv_remote.const import HTTP_TIMEOUT
from tv_remote.protocol.commands import Command
from tv_remote.protocol.exceptions import TVRemoteError, UnknownCommandError
from tv_remote.protocol.keymaps import ANDROID_KEYCODES
from tv_remote.structs import AndroidConfig, AppInfo, ConnectionState, TVState, TVType, parse_apps
from tv_remote.transport.exceptions import BridgeUnreachableError, TransportError
from tv_remote.transport.rest_client import RestClient, is_success

YOUTUBE_PACKAGE = "com.google.android.youtube.tv"


class AndroidAdapter(TVController[AndroidConfig]):
    """Connectivity is verified with one state fetch, never negotiated or retried."""

    tv_type: ClassVar[TVType] = TVType.ANDROID

    def __init__(self, config: AndroidConfig, *, http_timeout: float = HTTP_TIMEOUT, **kwargs: Any) -> None:
        super().__init__(config, **kwargs)
        self.http_timeout: float = http_timeout
        self.rest: RestClient | None = None

    def _bridge(self) -> RestClient:
        if not self.config.bridge_url:
            raise BridgeUnreachableError("Bridge URL is required for Android TV control")
        if self.rest is None:
            self.rest = RestClient(self.config.bridge_url, timeout=self.http_timeout)
        return self.rest

    async def _call(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        """
        One bridge call that must succeed.

        Raises:
            BridgeUnreachableError: Network failure or non-2xx status
        """
        bridge = self._bridge()
        try:
            if method == "GET":
                status, data = await bridge.get_json(path)
            else:
                status, data = await bridge.post_json(path, payload or {})
        except TransportError as e:
            raise BridgeUnreachableError(e.reason, url=e.url) from e
        if not is_success(status):
            raise BridgeUnreachableError(f"Bridge returned {status}", url=bridge.url(path), status=status)
        return data

    async def _connect(self) -> None:
        bridge = self._bridge()
        self._log(f"Checking bridge at {bridge.base_url}")
        try:
            state = await self._call("GET", "/state")
        except BridgeUnreachableError as e:
            raise BridgeUnreachableError(f"Cannot reach bridge: {e.reason}", url=e.url, status=e.status) from e

        self._abort_if_disconnected()
        if isinstance(state, Mapping):
            self.tv_state.merge(state)
        self._set_state(ConnectionState.CONNECTED)
        self._log("Bridge reachable")
        self._fire_connect()
        self._emit_state({**self.tv_state.as_dict(), "connected": True})

    async def _release_resources(self) -> None:
        if self.rest is not None:
            await self.rest.close()
            self.rest = None

    async def _send_command(self, command: Command) -> None:
        key = ANDROID_KEYCODES.get(command)
        if key is None:
            raise UnknownCommandError(command.value, self.tv_type.value)
        self._require_connected()
        try:
            await self._call("POST", "/command", {"key": key})
        except BridgeUnreachableError as e:
            raise BridgeUnreachableError(f"Command failed: {e.reason}", url=e.url, status=e.status) from e

    async def get_apps(self) -> list[AppInfo]:
        try:
            self._require_connected()
            data = await self._call("GET", "/apps")
        except TVRemoteError as e:
            return self._discovery_failed("apps", e)
        return parse_apps(data)

    async def launch_app(self, app_id: str, params: Mapping[str, Any] | None = None) -> None:
        self._require_connected()
        payload: dict[str, Any] = {"appId": app_id}
        intent_uri = (params or {}).get("intentUri")
        if intent_uri:
            payload["intentUri"] = intent_uri
        await self._call("POST", "/launch", payload)

    async def send_text(self, text: str) -> None:
        self._require_connected()
        await self._call("POST", "/text", {"text": text})

    async def open_youtube(self, video_id: str) -> None:
        await self.launch_app(YOUTUBE_PACKAGE, {"intentUri": f"https://www.youtube.com/watch?v={video_id}"})

    async def get_state(self) -> TVState:
        if not self.connected:
            return self.tv_state.snapshot()
        try:
            state = await self._call("GET", "/state")
        except BridgeUnreachableError as e:
            self._trace(f"State request failed: {e}")
        else:
            if isinstance(state, Mapping):
                self.tv_state.merge(state)
        return self.tv_state.snapshot()
