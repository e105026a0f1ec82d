from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import signal
import sys
from collections.abc import Sequence
from functools import partial
from typing import Any

import uvloop

from tv_remote.adapters.base import TVController
from tv_remote.adapters.factory import build_config, create_adapter
from tv_remote.const import TV_REMOTE_CONFIG_FILE, TV_REMOTE_VERSION
from tv_remote.correlation import operation_context
from tv_remote.logging_abstraction import get_logger, set_debug
from tv_remote.metrics import start_metrics_server
from tv_remote.protocol.exceptions import TVRemoteError
from tv_remote.storage import ConfigStore, YamlConfigStore
from tv_remote.structs import TVConfigBase, TVType

logger = get_logger(__name__)

ACTIONS = ("send", "apps", "inputs", "state", "launch", "text", "youtube", "volume", "switch-input", "repair", "watch")

# CLI flag -> stored config key (alias form, so it replaces the stored value)
_CONFIG_FLAGS = {
    "ip": "ip",
    "port": "port",
    "token": "token",
    "client_key": "clientKey",
    "proxy_url": "proxyBaseUrl",
    "entity_id": "remoteEntityId",
    "bridge_url": "bridgeUrl",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tv-remote", description="Drive a Samsung, LG or Android TV")
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {TV_REMOTE_VERSION}")
    _ = parser.add_argument("-t", "--type", dest="tv_type", required=True, choices=[t.value for t in TVType])
    _ = parser.add_argument("--ip", help="TV address (Samsung, LG)")
    _ = parser.add_argument("--port", type=int, help="TV port (defaults per TV type)")
    _ = parser.add_argument("--token", help="Samsung pairing token")
    _ = parser.add_argument("--client-key", dest="client_key", help="LG client key")
    _ = parser.add_argument("--proxy-url", dest="proxy_url", help="LG proxy backend base URL (enables proxy mode)")
    _ = parser.add_argument("--entity-id", dest="entity_id", help="Remote entity id the LG proxy may fall back to")
    _ = parser.add_argument("--bridge-url", dest="bridge_url", help="Android REST bridge base URL")
    _ = parser.add_argument("--config-file", dest="config_file", default=TV_REMOTE_CONFIG_FILE)
    _ = parser.add_argument("--metrics-port", dest="metrics_port", type=int, help="Serve Prometheus metrics on this port")
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug logging")

    actions = parser.add_subparsers(dest="action", required=True)
    send = actions.add_parser("send", help="Press a remote key (POWER, VOLUME_UP, OK, ...)")
    _ = send.add_argument("key")
    _ = actions.add_parser("apps", help="List installed apps")
    _ = actions.add_parser("inputs", help="List inputs")
    _ = actions.add_parser("state", help="Print the TV state")
    launch = actions.add_parser("launch", help="Launch an app")
    _ = launch.add_argument("app_id")
    _ = launch.add_argument("--content-id", dest="content_id")
    _ = launch.add_argument("--url")
    text = actions.add_parser("text", help="Type text into the focused field")
    _ = text.add_argument("text")
    youtube = actions.add_parser("youtube", help="Open a YouTube video")
    _ = youtube.add_argument("video_id")
    volume = actions.add_parser("volume", help="Set the volume level")
    _ = volume.add_argument("level", type=int)
    switch_input = actions.add_parser("switch-input", help="Switch to an input")
    _ = switch_input.add_argument("input_id")
    _ = actions.add_parser("repair", help="Re-pair an LG TV through the proxy backend")
    _ = actions.add_parser("watch", help="Stay connected and print state changes until interrupted")
    return parser


def parse_cli(argv: Sequence[str] | None = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if args.debug:
        set_debug(True)
        logger.info("Debug mode enabled via CLI argument")
    return args


def load_config(args: argparse.Namespace, store: ConfigStore) -> TVConfigBase:
    """Stored settings for the TV type, overlaid with whatever was passed on the command line."""
    data: dict[str, Any] = store.load(args.tv_type) or {}
    for flag, field in _CONFIG_FLAGS.items():
        value = getattr(args, flag, None)
        if value is not None:
            data[field] = value
    return build_config(args.tv_type, data)


def _emit(payload: object) -> None:
    print(json.dumps(payload, default=str), flush=True)


class RemoteSession:
    """One CLI invocation: connect, run the action, disconnect."""

    def __init__(self, args: argparse.Namespace, adapter: TVController[Any]) -> None:
        self.args: argparse.Namespace = args
        self.adapter: TVController[Any] = adapter
        self.stop_event: asyncio.Event = asyncio.Event()

        adapter.on_log(lambda message: logger.debug("[%s] %s", args.tv_type, message))
        adapter.on_error(lambda message: logger.error("[%s] %s", args.tv_type, message))
        adapter.on_connect(lambda: logger.info("Connected to %s TV", args.tv_type))
        adapter.on_disconnect(lambda: logger.info("Disconnected from %s TV", args.tv_type))
        if args.action == "watch":
            adapter.on_state_change(lambda partial_state: _emit({"state": partial_state}))

    def request_stop(self, signum: int) -> None:
        logger.info("Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
        self.stop_event.set()

    async def run(self) -> int:
        with operation_context():
            try:
                await self.adapter.connect()
                await self.adapter.wait_until_ready()
                await self._run_action()
            except TVRemoteError as e:
                logger.error("%s failed: %s", self.args.action, e, extra={"error_type": type(e).__name__})
                return 1
            finally:
                await self.adapter.disconnect()
        return 0

    async def _run_action(self) -> None:
        args, adapter = self.args, self.adapter
        match args.action:
            case "send":
                await adapter.send_command(args.key)
            case "apps":
                _emit([dataclasses.asdict(app) for app in await adapter.get_apps()])
            case "inputs":
                _emit(await adapter.get_inputs())
            case "state":
                state = await adapter.get_state()
                _emit(state.as_dict() if state is not None else None)
            case "launch":
                params = {k: v for k, v in (("contentId", args.content_id), ("url", args.url)) if v}
                await adapter.launch_app(args.app_id, params)
            case "text":
                await adapter.send_text(args.text)
            case "youtube":
                await adapter.open_youtube(args.video_id)
            case "volume":
                await adapter.set_volume(args.level)
            case "switch-input":
                await adapter.switch_input(args.input_id)
            case "repair":
                await adapter.repair()
            case "watch":
                _emit({"state": adapter.tv_state.as_dict()})
                await self.stop_event.wait()
            case _:
                msg = f"Unknown action: {args.action}"
                raise ValueError(msg)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the tv-remote CLI."""
    args = parse_cli(argv)
    store = YamlConfigStore(args.config_file)
    try:
        config = load_config(args, store)
    except ValueError as e:
        logger.error("Invalid %s configuration: %s", args.tv_type, e)
        return 2

    if args.metrics_port:
        start_metrics_server(args.metrics_port)
        logger.info("Metrics served on port %s", args.metrics_port)

    loop = uvloop.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        session = RemoteSession(args, create_adapter(args.tv_type, config, store=store))
        loop.add_signal_handler(signal.SIGINT, partial(session.request_stop, signal.SIGINT))
        loop.add_signal_handler(signal.SIGTERM, partial(session.request_stop, signal.SIGTERM))
        logger.debug("Signal handlers configured for SIGINT & SIGTERM")
        return loop.run_until_complete(session.run())
    finally:
        loop.close()


if __name__ == "__main__":
    sys.exit(main())
