"""Remote-control command vocabulary shared by all adapters."""

from __future__ import annotations

from enum import StrEnum

from tv_remote.protocol.exceptions import UnknownCommandError


class Command(StrEnum):
    """Keys a remote can press, independent of the TV protocol."""

    POWER = "POWER"
    VOLUME_UP = "VOLUME_UP"
    VOLUME_DOWN = "VOLUME_DOWN"
    MUTE = "MUTE"
    CHANNEL_UP = "CHANNEL_UP"
    CHANNEL_DOWN = "CHANNEL_DOWN"
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    OK = "OK"
    BACK = "BACK"
    HOME = "HOME"
    MENU = "MENU"
    SOURCE = "SOURCE"
    PLAY = "PLAY"
    PAUSE = "PAUSE"
    STOP = "STOP"


def parse_command(command: Command | str, tv_type: str = "") -> Command:
    """Normalise a caller-supplied command.

    Accepts a Command or its string value (case-insensitive).

    Raises:
        UnknownCommandError: The value is not part of the vocabulary

    """
    if isinstance(command, Command):
        return command
    if isinstance(command, str):
        try:
            return Command(command.strip().upper())
        except ValueError:
            pass
    raise UnknownCommandError(command, tv_type)
