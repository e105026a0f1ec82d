"""Samsung Tizen remote-control channel adapter."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Mapping
from typing import Any, ClassVar

from tv_remote.adapters.base import TVController
from tv_remote.const import APP_LIST_GRACE, SAMSUNG_APP_NAME
from tv_remote.protocol.commands import Command
from tv_remote.protocol.exceptions import TVRemoteError, UnknownCommandError
from tv_remote.protocol.keymaps import SAMSUNG_KEYS
from tv_remote.structs import AppInfo, SamsungConfig, TVState, TVType, parse_apps
from tv_remote.transport.exceptions import TransportError
from tv_remote.transport.socket_abstraction import unverified_ssl_context

YOUTUBE_APP_ID = "111299001912"
SECURE_PORT = 8002


class SamsungAdapter(TVController[SamsungConfig]):
    """Samsung TVs over `/api/v2/channels/samsung.remote.control`.

    The TV shows a pairing prompt on first connect and, once accepted, pushes a
    token in some inbound frame. The token is adopted onto the config and
    persisted so later connects skip the prompt.
    """

    tv_type: ClassVar[TVType] = TVType.SAMSUNG

    def __init__(self, config: SamsungConfig, *, app_list_grace: float = APP_LIST_GRACE, **kwargs: Any) -> None:
        super().__init__(config, **kwargs)
        self.app_list_grace: float = app_list_grace
        self._apps: list[AppInfo] = []

    def build_url(self) -> str:
        name_b64 = base64.b64encode(SAMSUNG_APP_NAME.encode()).decode()
        scheme = "wss" if self.config.port == SECURE_PORT else "ws"
        url = f"{scheme}://{self.config.ip}:{self.config.port}/api/v2/channels/samsung.remote.control?name={name_b64}"
        if self.config.token:
            url += f"&token={self.config.token}"
        return url

    async def _connect(self) -> None:
        ssl_context = unverified_ssl_context() if self.config.port == SECURE_PORT else None
        await self._open_transport(self.build_url(), ssl_context=ssl_context)
        try:
            await self._request_apps()
        except TransportError as e:
            self._log(f"App list request failed: {e}")

    def _handle_message(self, data: dict[str, Any]) -> None:
        payload = data.get("data")
        if isinstance(payload, Mapping):
            token = payload.get("token")
            if token and token != self.config.token:
                self.config.token = str(token)
                self._log("Received pairing token")
                self._persist_config()

            # ed.installedApp.get replies nest the list as data.data
            nested = payload.get("data")
            if isinstance(nested, list):
                self._apps = parse_apps(nested)
                self._trace(f"Cached {len(self._apps)} apps")

        event = data.get("event")
        if event == "ms.channel.connect":
            self._emit_state({"power": True, "connected": True})
        elif event == "ms.channel.unauthorized":
            self._emit_error("Pairing was refused on the TV")

        request_id = data.get("id")
        if request_id:
            self.correlator.resolve(str(request_id), data)

    async def _send_command(self, command: Command) -> None:
        key = SAMSUNG_KEYS.get(command)
        if key is None:
            raise UnknownCommandError(command.value, self.tv_type.value)
        self._require_connected()
        await self._send_json(
            {
                "method": "ms.remote.control",
                "params": {
                    "Cmd": "Click",
                    "DataOfCmd": key,
                    "Option": "false",
                    "TypeOfRemote": "SendRemoteKey",
                },
            }
        )

    async def _request_apps(self) -> None:
        await self._send_json(
            {
                "method": "ms.channel.emit",
                "params": {"event": "ed.installedApp.get", "to": "host"},
            }
        )

    async def get_apps(self) -> list[AppInfo]:
        """Return the pushed app list, asking for it first when nothing is cached.

        The TV answers asynchronously, so an empty cache triggers a request and
        a short grace wait; whatever has arrived by then is returned.
        """
        if not self._apps:
            try:
                await self._request_apps()
            except TVRemoteError as e:
                return self._discovery_failed("apps", e)
            await asyncio.sleep(self.app_list_grace)
        return list(self._apps)

    async def launch_app(self, app_id: str, params: Mapping[str, Any] | None = None) -> None:
        url = (params or {}).get("url")
        self._require_connected()
        await self._send_json(
            {
                "method": "ms.channel.emit",
                "params": {
                    "event": "ed.apps.launch",
                    "to": "host",
                    "data": {
                        "appId": app_id,
                        "action_type": "DEEP_LINK" if url else "NATIVE_LAUNCH",
                        "metaTag": url or app_id,
                    },
                },
            }
        )

    async def send_text(self, text: str) -> None:
        self._require_connected()
        await self._send_json(
            {
                "method": "ms.remote.control",
                "params": {
                    "Cmd": base64.b64encode(str(text).encode()).decode(),
                    "DataOfCmd": "base64",
                    "TypeOfRemote": "SendInputString",
                },
            }
        )

    async def open_youtube(self, video_id: str) -> None:
        await self.launch_app(YOUTUBE_APP_ID, {"url": f"https://www.youtube.com/watch?v={video_id}"})

    async def get_state(self) -> TVState:
        """Only power can be inferred (from the channel being open)."""
        return TVState(power=self.connected)

    def _on_transport_lost(self) -> None:
        self._apps = []
