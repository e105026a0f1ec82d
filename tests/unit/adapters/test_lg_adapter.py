"""Unit tests for LGAdapter in direct (SSAP over WebSocket) mode.

Tests cover:
- Registration: pairing prompt, client key adoption, rejection, timeout
- ws:// then wss:// endpoint fallback
- Post-registration subscriptions and the pointer input socket
- Command routing (pointer buttons vs SSAP URIs, mute toggle)
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from tests.helpers.expectations import expect_async_exception
from tests.helpers.fakes import CallbackRecorder, FakeConnection, FakeConnectionFactory, settle
from tv_remote.adapters.lg import LGAdapter
from tv_remote.protocol.exceptions import RegistrationFailedError, UnknownCommandError, UnsupportedOperationError
from tv_remote.protocol.keymaps import (
    LG_URI_CURRENT_CHANNEL,
    LG_URI_FOREGROUND_APP,
    LG_URI_INPUT_LIST,
    LG_URI_LIST_APPS,
    LG_URI_VOLUME,
)
from tv_remote.storage import MemoryConfigStore
from tv_remote.structs import AppInfo, ConnectionState, LGConfig
from tv_remote.transport.exceptions import DisconnectedError, RequestTimeoutError, TransportError

TV_IP = "192.168.1.30"
WS_URL = f"ws://{TV_IP}:3000"
WSS_URL = f"wss://{TV_IP}:3001"
POINTER_URL = f"ws://{TV_IP}:3000/resources/pointer"


class FakeWebOS:
    """Answers SSAP requests the way a webOS TV does."""

    def __init__(self, *, issued_key: str | None = "KEY123", reject: bool = False) -> None:
        self.issued_key = issued_key
        self.reject = reject
        self.answer_register = True
        self.subscription_payloads: dict[str, dict[str, Any]] = {
            LG_URI_VOLUME: {"volume": 15, "muted": False},
            LG_URI_FOREGROUND_APP: {"appId": "com.webos.app.hdmi1"},
            LG_URI_CURRENT_CHANNEL: {"channelName": "BBC One"},
        }
        self.request_payloads: dict[str, dict[str, Any]] = {
            LG_URI_LIST_APPS: {"apps": [{"id": "netflix", "title": "Netflix", "icon": "http://tv/netflix.png"}]},
            LG_URI_INPUT_LIST: {"devices": [{"id": "HDMI_1", "label": "HDMI 1"}, "junk"]},
        }

    def __call__(self, conn: FakeConnection, payload: dict[str, Any]) -> None:
        msg_type = payload.get("type")
        request_id = payload.get("id")
        if msg_type == "register":
            if not self.answer_register:
                return
            if self.reject:
                conn.deliver_soon({"type": "error", "id": request_id, "error": "403 User denied access"})
                return
            conn.deliver_soon({"type": "response", "id": request_id, "payload": {"pairingType": "PROMPT"}})
            key_payload = {"client-key": self.issued_key} if self.issued_key else {}
            conn.deliver_soon({"type": "registered", "id": request_id, "payload": key_payload})
        elif msg_type == "subscribe":
            conn.deliver_soon(
                {"type": "response", "id": request_id, "payload": self.subscription_payloads[payload["uri"]]}
            )
        elif request_id == "input_0":
            conn.deliver_soon({"type": "response", "id": request_id, "payload": {"socketPath": POINTER_URL}})
        elif payload.get("uri") in self.request_payloads:
            conn.deliver_soon(
                {"type": "response", "id": request_id, "payload": self.request_payloads[payload["uri"]]}
            )


def make_adapter(
    factory: FakeConnectionFactory,
    store: MemoryConfigStore | None = None,
    *,
    registration_timeout: float = 1.0,
    **config: Any,
) -> LGAdapter:
    return LGAdapter(
        LGConfig(ip=TV_IP, **config),
        store=store,
        connection_factory=factory,
        registration_timeout=registration_timeout,
        request_timeout=0.2,
    )


async def connect_and_setup(adapter: LGAdapter) -> None:
    await adapter.connect()
    assert adapter.setup_task is not None
    await adapter.setup_task


def sub_id(adapter: LGAdapter, uri: str) -> str:
    return next(request_id for request_id, sub_uri in adapter.subscriptions.items() if sub_uri == uri)


def test_endpoint_variants() -> None:
    factory = FakeConnectionFactory()

    assert make_adapter(factory).endpoint_variants() == [WS_URL, WSS_URL]
    assert make_adapter(factory, port=3443).endpoint_variants() == [f"ws://{TV_IP}:3443", f"wss://{TV_IP}:3443"]


@pytest.mark.asyncio
async def test_registration_adopts_and_persists_client_key(
    connection_factory: FakeConnectionFactory,
    memory_store: MemoryConfigStore,
    callbacks: CallbackRecorder,
) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory, memory_store)
    _ = callbacks.attach(adapter)

    await connect_and_setup(adapter)

    assert adapter.connection_state == ConnectionState.CONNECTED
    assert adapter.config.client_key == "KEY123"
    assert memory_store.load("lg") == {"ip": TV_IP, "port": 3000, "clientKey": "KEY123"}
    assert callbacks.connects == 1
    assert {"pairing_prompt": True} in callbacks.states
    assert {"client_key": "KEY123"} in callbacks.states
    merged = callbacks.merged_state()
    assert merged["connected"] is True
    assert merged["paired"] is True
    assert merged["pairing_prompt"] is False
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_registration_request_carries_stored_key(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS(issued_key=None)
    adapter = make_adapter(connection_factory, client_key="OLDKEY")

    await connect_and_setup(adapter)

    register = connection_factory.connections[0].sent[0]
    assert register["type"] == "register"
    assert register["id"] == "register_0"
    assert register["payload"]["client-key"] == "OLDKEY"
    assert register["payload"]["pairingType"] == "PROMPT"
    # A registered reply without a key keeps the stored one
    assert adapter.config.client_key == "OLDKEY"
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_first_registration_omits_client_key(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)

    await connect_and_setup(adapter)

    assert "client-key" not in connection_factory.connections[0].sent[0]["payload"]
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_rejected_registration_tries_both_endpoints(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    connection_factory.responder = FakeWebOS(reject=True)
    adapter = make_adapter(connection_factory)
    _ = callbacks.attach(adapter)

    err = await expect_async_exception(adapter.connect(), RegistrationFailedError, match="requires proxy mode")

    assert f"Could not connect to TV at {TV_IP}" in err.reason
    assert connection_factory.urls == [WS_URL, WSS_URL]
    assert all(conn.closed for conn in connection_factory.connections)
    assert adapter.connection_state == ConnectionState.DISCONNECTED
    assert callbacks.connects == 0
    assert callbacks.disconnects == 0
    assert len(callbacks.errors) == 1


@pytest.mark.asyncio
async def test_registration_timeout_ignores_late_reply(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    tv = FakeWebOS()
    tv.answer_register = False
    connection_factory.responder = tv
    adapter = make_adapter(connection_factory, registration_timeout=0.02)
    _ = callbacks.attach(adapter)

    err = await expect_async_exception(adapter.connect(), RegistrationFailedError)

    assert isinstance(err.__cause__, RequestTimeoutError)
    assert adapter.connection_state == ConnectionState.DISCONNECTED
    assert adapter.correlator.pending_count == 0

    connection_factory.connections[0].deliver(
        {"type": "registered", "id": "register_0", "payload": {"client-key": "LATE"}}
    )
    await settle()

    assert adapter.config.client_key is None
    assert adapter.connection_state == ConnectionState.DISCONNECTED
    assert callbacks.connects == 0
    assert {"client_key": "LATE"} not in callbacks.states


@pytest.mark.asyncio
async def test_disconnect_during_registration_stops_connect(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    tv = FakeWebOS()
    tv.answer_register = False
    connection_factory.responder = tv
    adapter = make_adapter(connection_factory)
    _ = callbacks.attach(adapter)
    connecting = asyncio.create_task(adapter.connect())
    await settle()
    assert adapter.connection_state == ConnectionState.REGISTERING

    await adapter.disconnect()
    _ = await expect_async_exception(connecting, DisconnectedError)

    # The secure endpoint is never tried and no pointer socket is opened
    assert connection_factory.urls == [WS_URL]
    assert connection_factory.connections[0].closed is True
    assert adapter.connection_state == ConnectionState.DISCONNECTED
    assert adapter.setup_task is None
    assert callbacks.connects == 0
    assert callbacks.disconnects == 0
    assert callbacks.errors == []


@pytest.mark.asyncio
async def test_falls_back_to_secure_socket(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    connection_factory.failures[WS_URL] = TransportError("refused", url=WS_URL)
    adapter = make_adapter(connection_factory)

    await connect_and_setup(adapter)

    assert connection_factory.urls[:2] == [WS_URL, WSS_URL]
    assert adapter.transport is connection_factory.connections[1]
    assert connection_factory.connections[1].ssl_context is not None
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_unreachable_tv_suggests_proxy_mode(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.failures[WS_URL] = TransportError("refused", url=WS_URL)
    connection_factory.failures[WSS_URL] = TransportError("refused", url=WSS_URL)
    adapter = make_adapter(connection_factory)

    err = await expect_async_exception(adapter.connect(), TransportError)

    assert not isinstance(err, RegistrationFailedError)
    assert err.reason == (
        f"Could not connect to TV at {TV_IP}. Tried {WS_URL} and {WSS_URL}. "
        "This TV likely requires proxy mode, configure a proxy backend URL."
    )


@pytest.mark.asyncio
async def test_setup_subscribes_and_opens_pointer_socket(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    _ = callbacks.attach(adapter)

    await connect_and_setup(adapter)

    subscribed = [frame["uri"] for frame in adapter.transport.sent if frame.get("type") == "subscribe"]
    assert sorted(subscribed) == sorted([LG_URI_VOLUME, LG_URI_FOREGROUND_APP, LG_URI_CURRENT_CHANNEL])
    assert adapter.tv_state.volume == 15
    assert adapter.tv_state.muted is False
    assert adapter.tv_state.app == "com.webos.app.hdmi1"
    assert adapter.tv_state.source == "BBC One"

    assert connection_factory.last.url == POINTER_URL
    assert adapter.input_socket is connection_factory.last
    assert adapter.tv_state.dpad_ready is True
    assert callbacks.merged_state()["input_socket_connected"] is True
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_subscription_changes_update_state(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)

    adapter.transport.deliver(
        {"type": "changed", "id": sub_id(adapter, LG_URI_VOLUME), "payload": {"volumeStatus": {"volume": 20, "muteStatus": True}}}
    )
    adapter.transport.deliver(
        {"type": "changed", "id": sub_id(adapter, LG_URI_FOREGROUND_APP), "payload": {"appId": "netflix"}}
    )

    assert adapter.tv_state.volume == 20
    assert adapter.tv_state.muted is True
    assert adapter.tv_state.app == "netflix"
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_dpad_commands_use_pointer_socket(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)
    main_sent = len(adapter.transport.sent)

    await adapter.up()
    await adapter.ok()
    await adapter.back()

    assert adapter.input_socket.sent_raw == [
        "type:button\nname:UP\n\n",
        "type:button\nname:ENTER\n\n",
        "type:button\nname:BACK\n\n",
    ]
    assert len(adapter.transport.sent) == main_sent
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_wait_until_ready_covers_pointer_socket(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await adapter.connect()
    assert adapter.input_socket is None

    await adapter.wait_until_ready()
    await adapter.ok()

    assert adapter.input_socket.sent_raw == ["type:button\nname:ENTER\n\n"]
    await adapter.disconnect()
    # Nothing left to wait for once torn down
    await adapter.wait_until_ready()


@pytest.mark.asyncio
async def test_dpad_without_pointer_socket_fails(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    connection_factory.failures[POINTER_URL] = TransportError("refused", url=POINTER_URL)
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)

    assert adapter.input_socket is None
    _ = await expect_async_exception(adapter.left(), TransportError, match="Input socket not connected")
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_ssap_commands_and_mute_toggle(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)
    conn = adapter.transport

    await adapter.volume_up()
    await adapter.mute()
    conn.deliver({"type": "changed", "id": sub_id(adapter, LG_URI_VOLUME), "payload": {"volume": 16, "muted": True}})
    await adapter.mute()

    volume_up, mute_on, mute_off = conn.sent[-3:]
    assert volume_up["uri"] == "ssap://audio/volumeUp"
    assert volume_up["type"] == "request"
    assert mute_on["uri"] == "ssap://audio/setMute"
    assert mute_on["payload"] == {"mute": True}
    assert mute_off["payload"] == {"mute": False}
    assert len({volume_up["id"], mute_on["id"], mute_off["id"]}) == 3
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_source_has_no_webos_mapping(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)
    sent_before = len(adapter.transport.sent)

    _ = await expect_async_exception(adapter.send_command("SOURCE"), UnknownCommandError, match="for lg")

    assert len(adapter.transport.sent) == sent_before
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_peer_close_does_not_reconnect(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    _ = callbacks.attach(adapter)
    await connect_and_setup(adapter)
    pointer = adapter.input_socket
    opened = len(connection_factory.connections)

    adapter.transport.drop()
    await asyncio.sleep(0.05)

    assert adapter.connection_state == ConnectionState.DISCONNECTED
    assert callbacks.disconnects == 1
    assert len(connection_factory.connections) == opened
    assert pointer.closed is True
    assert adapter.subscriptions == {}
    assert callbacks.merged_state()["dpad_ready"] is False


@pytest.mark.asyncio
async def test_pointer_socket_close_reports_dpad_unavailable(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    _ = callbacks.attach(adapter)
    await connect_and_setup(adapter)

    adapter.input_socket.drop()

    assert adapter.input_socket is None
    assert callbacks.states[-1] == {"input_socket_connected": False, "dpad_ready": False}
    assert adapter.connected is True
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_apps_and_inputs(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)

    assert await adapter.get_apps() == [AppInfo(id="netflix", name="Netflix", icon="http://tv/netflix.png")]
    assert await adapter.get_inputs() == [{"id": "HDMI_1", "label": "HDMI 1"}]
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_discovery_failure_returns_empty(
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    tv = FakeWebOS()
    tv.request_payloads.clear()
    connection_factory.responder = tv
    adapter = make_adapter(connection_factory)
    _ = callbacks.attach(adapter)
    await connect_and_setup(adapter)

    assert await adapter.get_apps() == []
    assert any(line.startswith("Failed to get apps") for line in callbacks.logs)
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_launch_text_volume_and_input_requests(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)
    conn = adapter.transport

    await adapter.open_youtube("dQw4w9WgXcQ")
    await adapter.send_text("hello")
    await adapter.set_volume(11)
    await adapter.switch_input("HDMI_2")

    launch, text, volume, switch = conn.sent[-4:]
    assert launch["uri"] == "ssap://system.launcher/launch"
    assert launch["payload"] == {"id": "youtube.leanback.v4", "contentId": "dQw4w9WgXcQ"}
    assert text["payload"] == {"text": "hello", "replace": 0}
    assert volume["payload"] == {"volume": 11}
    assert switch["uri"] == "ssap://tv/switchInput"
    assert switch["payload"] == {"inputId": "HDMI_2"}
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_repair_needs_proxy_mode(connection_factory: FakeConnectionFactory) -> None:
    adapter = make_adapter(connection_factory)

    err = await expect_async_exception(adapter.repair(), UnsupportedOperationError)

    assert "only available in proxy mode" in str(err)


@pytest.mark.asyncio
async def test_get_state_returns_independent_snapshot(connection_factory: FakeConnectionFactory) -> None:
    connection_factory.responder = FakeWebOS()
    adapter = make_adapter(connection_factory)
    await connect_and_setup(adapter)

    state = await adapter.get_state()
    adapter.tv_state.volume = 99
    await settle()

    assert state.volume == 15
    await adapter.disconnect()
