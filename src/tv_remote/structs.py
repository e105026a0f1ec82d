"""Data model shared by the adapters: TV types, configs, state snapshots."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, TypeAlias

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from tv_remote.const import DEFAULT_PORTS


class TVType(StrEnum):
    SAMSUNG = "samsung"
    LG = "lg"
    ANDROID = "android"


class ConnectionState(StrEnum):
    """Adapter connection state. REGISTERING is only used by LG direct mode."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    REGISTERING = "registering"
    RECONNECTING = "reconnecting"


class TVConfigBase(BaseModel):
    """Base for per-protocol connection settings.

    Field aliases match the keys of the persisted per-TV blob; both the alias
    and the Python field name are accepted on input. Adapters write issued
    tokens/keys back onto the same instance.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True, extra="ignore")

    # Fields written to the config store, in persisted (alias) form
    persisted_fields: ClassVar[frozenset[str]] = frozenset()

    def storage_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, include=set(self.persisted_fields), exclude_none=True)


class SamsungConfig(TVConfigBase):
    persisted_fields: ClassVar[frozenset[str]] = frozenset({"ip", "port", "token"})

    ip: str
    port: int = DEFAULT_PORTS["samsung"]
    token: str | None = None


class LGConfig(TVConfigBase):
    # proxy_base_url comes from the caller's profile and is never persisted here
    persisted_fields: ClassVar[frozenset[str]] = frozenset({"ip", "port", "client_key"})

    ip: str
    port: int = DEFAULT_PORTS["lg"]
    client_key: str | None = Field(default=None, alias="clientKey")
    proxy_base_url: str | None = Field(
        default=None,
        alias="proxyBaseUrl",
        validation_alias=AliasChoices("proxyBaseUrl", "adminUrl", "proxy_base_url"),
    )
    remote_entity_id: str | None = Field(
        default=None,
        alias="remoteEntityId",
        validation_alias=AliasChoices("remoteEntityId", "haEntityId", "remote_entity_id"),
    )

    @property
    def proxy_mode(self) -> bool:
        return bool(self.proxy_base_url)


class AndroidConfig(TVConfigBase):
    persisted_fields: ClassVar[frozenset[str]] = frozenset({"bridge_url"})

    bridge_url: str | None = Field(default=None, alias="bridgeUrl")


ConnectionConfig: TypeAlias = SamsungConfig | LGConfig | AndroidConfig


@dataclass
class TVState:
    """Mutable snapshot of what the adapter knows about the TV.

    Updated in place from partial updates; unknown keys in a partial are
    ignored so protocol payloads can be merged without pre-filtering.
    """

    power: bool = False
    volume: int | None = None
    muted: bool = False
    source: str | None = None
    app: str | None = None
    app_name: str | None = None
    # LG only
    input_socket_connected: bool = False
    dpad_ready: bool = False
    pairing_prompt: bool = False
    remote_fallback: bool = False

    # Wire names used by the LG proxy backend and the Android bridge
    _WIRE_NAMES: ClassVar[dict[str, str]] = {
        "appName": "app_name",
        "appId": "app",
        "inputSocketConnected": "input_socket_connected",
        "dpadReady": "dpad_ready",
        "pairingPrompt": "pairing_prompt",
        "haFallback": "remote_fallback",
    }

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in dataclasses.fields(cls))

    def merge(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Apply known fields from `partial` and return the ones that changed."""
        names = self.field_names()
        changed: dict[str, Any] = {}
        for key, value in partial.items():
            name = self._WIRE_NAMES.get(key, key)
            if name not in names:
                continue
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed[name] = value
        return changed

    def snapshot(self) -> TVState:
        return dataclasses.replace(self)

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class AppInfo:
    id: str
    name: str
    icon: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AppInfo | None:
        """Normalise an app record from any of the three protocols.

        Samsung uses `appId`/`name`, LG `id`/`title`, the bridge `id`/`name`.
        Records without an id are dropped.
        """
        app_id = data.get("id") or data.get("appId")
        if not app_id:
            return None
        name = data.get("name") or data.get("title") or app_id
        icon = data.get("icon")
        return cls(id=str(app_id), name=str(name), icon=str(icon) if icon else None)


def parse_apps(records: object) -> list[AppInfo]:
    if not isinstance(records, list):
        return []
    apps: list[AppInfo] = []
    for record in records:
        if isinstance(record, Mapping):
            app = AppInfo.from_mapping(record)
            if app is not None:
                apps.append(app)
    return apps
