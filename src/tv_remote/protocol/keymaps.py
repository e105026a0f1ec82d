"""Per-protocol encodings of the command vocabulary.

A command missing from a protocol's map is an UnknownCommandError for that
adapter, raised before anything is sent.
"""

from __future__ import annotations

from typing import Final

from tv_remote.protocol.commands import Command

# Samsung ms.remote.control key names
SAMSUNG_KEYS: Final[dict[Command, str]] = {
    Command.POWER: "KEY_POWER",
    Command.VOLUME_UP: "KEY_VOLUP",
    Command.VOLUME_DOWN: "KEY_VOLDOWN",
    Command.MUTE: "KEY_MUTE",
    Command.CHANNEL_UP: "KEY_CHUP",
    Command.CHANNEL_DOWN: "KEY_CHDOWN",
    Command.UP: "KEY_UP",
    Command.DOWN: "KEY_DOWN",
    Command.LEFT: "KEY_LEFT",
    Command.RIGHT: "KEY_RIGHT",
    Command.OK: "KEY_ENTER",
    Command.BACK: "KEY_RETURN",
    Command.HOME: "KEY_HOME",
    Command.MENU: "KEY_MENU",
    Command.SOURCE: "KEY_SOURCE",
    Command.PLAY: "KEY_PLAY",
    Command.PAUSE: "KEY_PAUSE",
    Command.STOP: "KEY_STOP",
}

# Android keyevent names understood by the ADB bridge
ANDROID_KEYCODES: Final[dict[Command, str]] = {
    Command.POWER: "KEYCODE_POWER",
    Command.VOLUME_UP: "KEYCODE_VOLUME_UP",
    Command.VOLUME_DOWN: "KEYCODE_VOLUME_DOWN",
    Command.MUTE: "KEYCODE_VOLUME_MUTE",
    Command.CHANNEL_UP: "KEYCODE_CHANNEL_UP",
    Command.CHANNEL_DOWN: "KEYCODE_CHANNEL_DOWN",
    Command.UP: "KEYCODE_DPAD_UP",
    Command.DOWN: "KEYCODE_DPAD_DOWN",
    Command.LEFT: "KEYCODE_DPAD_LEFT",
    Command.RIGHT: "KEYCODE_DPAD_RIGHT",
    Command.OK: "KEYCODE_DPAD_CENTER",
    Command.BACK: "KEYCODE_BACK",
    Command.HOME: "KEYCODE_HOME",
    Command.MENU: "KEYCODE_MENU",
    Command.SOURCE: "KEYCODE_TV_INPUT",
    Command.PLAY: "KEYCODE_MEDIA_PLAY",
    Command.PAUSE: "KEYCODE_MEDIA_PAUSE",
    Command.STOP: "KEYCODE_MEDIA_STOP",
}

# LG pointer-socket button names; these never go over the SSAP channel
LG_POINTER_BUTTONS: Final[dict[Command, str]] = {
    Command.UP: "UP",
    Command.DOWN: "DOWN",
    Command.LEFT: "LEFT",
    Command.RIGHT: "RIGHT",
    Command.OK: "ENTER",
    Command.BACK: "BACK",
    Command.HOME: "HOME",
    Command.MENU: "MENU",
}

LG_COMMAND_URIS: Final[dict[Command, str]] = {
    Command.POWER: "ssap://system/turnOff",
    Command.VOLUME_UP: "ssap://audio/volumeUp",
    Command.VOLUME_DOWN: "ssap://audio/volumeDown",
    Command.MUTE: "ssap://audio/setMute",
    Command.CHANNEL_UP: "ssap://tv/channelUp",
    Command.CHANNEL_DOWN: "ssap://tv/channelDown",
    Command.PLAY: "ssap://media.controls/play",
    Command.PAUSE: "ssap://media.controls/pause",
    Command.STOP: "ssap://media.controls/stop",
}

LG_URI_VOLUME: Final = "ssap://audio/getVolume"
LG_URI_FOREGROUND_APP: Final = "ssap://com.webos.applicationManager/getForegroundAppInfo"
LG_URI_CURRENT_CHANNEL: Final = "ssap://tv/getCurrentChannel"
LG_URI_POINTER_SOCKET: Final = "ssap://com.webos.service.networkinput/getPointerInputSocket"
LG_URI_LIST_APPS: Final = "ssap://com.webos.applicationManager/listApps"
LG_URI_LAUNCH: Final = "ssap://system.launcher/launch"
LG_URI_INSERT_TEXT: Final = "ssap://com.webos.service.ime/insertText"
LG_URI_SET_VOLUME: Final = "ssap://audio/setVolume"
LG_URI_SWITCH_INPUT: Final = "ssap://tv/switchInput"
LG_URI_INPUT_LIST: Final = "ssap://tv/getExternalInputList"

LG_STATE_SUBSCRIPTIONS: Final[tuple[str, ...]] = (
    LG_URI_VOLUME,
    LG_URI_FOREGROUND_APP,
    LG_URI_CURRENT_CHANNEL,
)
