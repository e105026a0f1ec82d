"""Unit tests for AndroidAdapter against a real aiohttp bridge."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from tests.helpers.expectations import expect_async_exception
from tests.helpers.fakes import CallbackRecorder, FakeConnectionFactory
from tv_remote.adapters.android import YOUTUBE_PACKAGE, AndroidAdapter
from tv_remote.protocol.exceptions import UnknownCommandError
from tv_remote.structs import AndroidConfig, AppInfo, ConnectionState
from tv_remote.transport.exceptions import BridgeUnreachableError, DisconnectedError


class FakeBridge:
    """ADB bridge: records POST bodies, serves state and apps."""

    def __init__(self) -> None:
        self.posts: list[tuple[str, dict[str, Any]]] = []
        self.state_status = 200
        self.apps_status = 200
        self.command_status = 200
        self.state: dict[str, Any] = {"power": True, "volume": 9, "app": "com.netflix.ninja"}

    async def get_state(self, _request: web.Request) -> web.Response:
        if self.state_status != 200:
            return web.json_response({"error": "adb offline"}, status=self.state_status)
        return web.json_response(self.state)

    async def get_apps(self, _request: web.Request) -> web.Response:
        if self.apps_status != 200:
            return web.json_response({"error": "adb offline"}, status=self.apps_status)
        return web.json_response([{"id": "com.netflix.ninja", "name": "Netflix"}, {"name": "no id"}])

    async def post(self, request: web.Request) -> web.Response:
        self.posts.append((request.path, await request.json()))
        if request.path == "/command" and self.command_status != 200:
            return web.json_response({"error": "adb offline"}, status=self.command_status)
        return web.json_response({"success": True})


@pytest_asyncio.fixture
async def bridge() -> AsyncIterator[tuple[FakeBridge, str]]:
    fake = FakeBridge()
    app = web.Application()
    _ = app.router.add_get("/state", fake.get_state)
    _ = app.router.add_get("/apps", fake.get_apps)
    for path in ("/command", "/launch", "/text"):
        _ = app.router.add_post(path, fake.post)
    server = TestServer(app)
    await server.start_server()
    try:
        yield fake, str(server.make_url("")).rstrip("/")
    finally:
        await server.close()


def make_adapter(bridge_url: str | None, factory: FakeConnectionFactory) -> AndroidAdapter:
    return AndroidAdapter(AndroidConfig(bridgeUrl=bridge_url), connection_factory=factory, http_timeout=2.0)


@pytest.mark.asyncio
async def test_connect_fetches_state(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    _, url = bridge
    adapter = make_adapter(url, connection_factory)
    _ = callbacks.attach(adapter)

    await adapter.connect()

    assert adapter.connection_state == ConnectionState.CONNECTED
    assert connection_factory.connections == []
    assert callbacks.connects == 1
    merged = callbacks.merged_state()
    assert merged["connected"] is True
    assert merged["volume"] == 9
    assert adapter.tv_state.app == "com.netflix.ninja"
    await adapter.disconnect()
    assert callbacks.disconnects == 1


@pytest.mark.asyncio
async def test_bridge_error_status_keeps_adapter_disconnected(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    fake, url = bridge
    fake.state_status = 500
    adapter = make_adapter(url, connection_factory)
    _ = callbacks.attach(adapter)

    err = await expect_async_exception(adapter.connect(), BridgeUnreachableError)

    assert str(err) == "Cannot reach bridge: Bridge returned 500"
    assert err.status == 500
    assert adapter.connection_state == ConnectionState.DISCONNECTED
    assert callbacks.errors == ["Cannot reach bridge: Bridge returned 500"]
    assert callbacks.connects == 0
    _ = await expect_async_exception(adapter.home(), DisconnectedError)


@pytest.mark.asyncio
async def test_missing_bridge_url(connection_factory: FakeConnectionFactory) -> None:
    adapter = make_adapter(None, connection_factory)

    _ = await expect_async_exception(adapter.connect(), BridgeUnreachableError, match="Bridge URL is required")

    assert adapter.connection_state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_unreachable_bridge(connection_factory: FakeConnectionFactory) -> None:
    app = web.Application()
    server = TestServer(app)
    await server.start_server()
    url = str(server.make_url("")).rstrip("/")
    await server.close()
    adapter = make_adapter(url, connection_factory)

    err = await expect_async_exception(adapter.connect(), BridgeUnreachableError)

    assert str(err).startswith("Cannot reach bridge: ")
    assert err.status is None


@pytest.mark.asyncio
async def test_commands_post_keycodes(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    await adapter.connect()

    await adapter.ok()
    await adapter.send_command("volume_down")
    await adapter.send_command("SOURCE")

    assert fake.posts == [
        ("/command", {"key": "KEYCODE_DPAD_CENTER"}),
        ("/command", {"key": "KEYCODE_VOLUME_DOWN"}),
        ("/command", {"key": "KEYCODE_TV_INPUT"}),
    ]
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_failed_command_reports_bridge_status(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    await adapter.connect()
    fake.command_status = 503

    err = await expect_async_exception(adapter.power(), BridgeUnreachableError)

    assert str(err) == "Command failed: Bridge returned 503"
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_unknown_command_posts_nothing(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    await adapter.connect()

    _ = await expect_async_exception(adapter.send_command("EJECT"), UnknownCommandError)

    assert fake.posts == []
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_apps_are_best_effort(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
    callbacks: CallbackRecorder,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    _ = callbacks.attach(adapter)
    await adapter.connect()

    assert await adapter.get_apps() == [AppInfo(id="com.netflix.ninja", name="Netflix")]

    fake.apps_status = 500
    assert await adapter.get_apps() == []
    assert "Failed to get apps: Bridge returned 500" in callbacks.logs
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_launch_text_and_youtube(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    await adapter.connect()

    await adapter.launch_app("com.netflix.ninja")
    await adapter.send_text("search me")
    await adapter.open_youtube("dQw4w9WgXcQ")

    assert fake.posts == [
        ("/launch", {"appId": "com.netflix.ninja"}),
        ("/text", {"text": "search me"}),
        ("/launch", {"appId": YOUTUBE_PACKAGE, "intentUri": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"}),
    ]
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_get_state_survives_bridge_failure(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    await adapter.connect()

    fake.state = {"power": True, "volume": 20}
    assert (await adapter.get_state()).volume == 20

    fake.state_status = 500
    state = await adapter.get_state()
    assert state.volume == 20
    await adapter.disconnect()


@pytest.mark.asyncio
async def test_actions_require_connection(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)

    _ = await expect_async_exception(adapter.launch_app("com.netflix.ninja"), DisconnectedError, match="Not connected")
    _ = await expect_async_exception(adapter.send_text("search me"), DisconnectedError)
    _ = await expect_async_exception(adapter.open_youtube("dQw4w9WgXcQ"), DisconnectedError)
    assert await adapter.get_apps() == []
    assert (await adapter.get_state()).volume is None

    assert fake.posts == []
    assert adapter.rest is None


@pytest.mark.asyncio
async def test_actions_rejected_after_disconnect(
    bridge: tuple[FakeBridge, str],
    connection_factory: FakeConnectionFactory,
) -> None:
    fake, url = bridge
    adapter = make_adapter(url, connection_factory)
    await adapter.connect()
    await adapter.disconnect()

    _ = await expect_async_exception(adapter.launch_app("com.netflix.ninja"), DisconnectedError)

    assert fake.posts == []
    assert adapter.rest is None
