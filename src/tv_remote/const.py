import os
from pathlib import Path

from tv_remote import __version__

__all__ = [
    "ANDROID_DEFAULT_BRIDGE_PORT",
    "APP_LIST_GRACE",
    "CONNECT_TIMEOUT",
    "DEFAULT_PORTS",
    "HTTP_TIMEOUT",
    "LG_PROXY_PATH",
    "MAX_RECONNECT_ATTEMPTS",
    "POLL_INTERVAL",
    "RECONNECT_DELAY",
    "REGISTRATION_TIMEOUT",
    "REQUEST_TIMEOUT",
    "SAMSUNG_APP_NAME",
    "STORAGE_KEYS",
    "TV_REMOTE_CONFIG_FILE",
    "TV_REMOTE_DEBUG",
    "TV_REMOTE_LOG_FORMAT",
    "TV_REMOTE_LOG_HUMAN_OUTPUT",
    "TV_REMOTE_LOG_JSON_FILE",
    "TV_REMOTE_PERF_THRESHOLD_MS",
    "TV_REMOTE_PERF_TRACKING",
    "TV_REMOTE_VERSION",
    "WS_LOG_PREVIEW_CHARS",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
TV_REMOTE_VERSION: str = __version__


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except (ValueError, TypeError):
        return default
    return value if value > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Timers (seconds)
CONNECT_TIMEOUT: float = _env_float("TV_REMOTE_CONNECT_TIMEOUT", 10.0)
RECONNECT_DELAY: float = _env_float("TV_REMOTE_RECONNECT_DELAY", 3.0)
MAX_RECONNECT_ATTEMPTS: int = _env_int("TV_REMOTE_MAX_RECONNECT_ATTEMPTS", 3)
REQUEST_TIMEOUT: float = _env_float("TV_REMOTE_REQUEST_TIMEOUT", 5.0)
# LG replies to registration only after a human accepts the prompt on the TV
REGISTRATION_TIMEOUT: float = _env_float("TV_REMOTE_REGISTRATION_TIMEOUT", 30.0)
POLL_INTERVAL: float = _env_float("TV_REMOTE_POLL_INTERVAL", 3.0)
HTTP_TIMEOUT: float = _env_float("TV_REMOTE_HTTP_TIMEOUT", 5.0)
APP_LIST_GRACE: float = _env_float("TV_REMOTE_APP_LIST_GRACE", 1.0)

WS_LOG_PREVIEW_CHARS = 200

DEFAULT_PORTS: dict[str, int] = {
    "samsung": 8001,
    "lg": 3000,
    "android": 5555,
}
ANDROID_DEFAULT_BRIDGE_PORT = 8080

STORAGE_KEYS: dict[str, str] = {
    "samsung": "tvlab_samsung_config",
    "lg": "tvlab_lg_config",
    "android": "tvlab_android_config",
}

SAMSUNG_APP_NAME: str = os.environ.get("TV_REMOTE_APP_NAME", "TVControlLab")
LG_PROXY_PATH = "/api/tv-proxy"

TV_REMOTE_DEBUG: bool = os.environ.get("TV_REMOTE_DEBUG", "0").casefold() in YES_ANSWER
TV_REMOTE_CONFIG_FILE: str = os.environ.get(
    "TV_REMOTE_CONFIG_FILE",
    str(Path("~/.config/tv-remote/tv_config.yaml").expanduser()),
)

# Logging Configuration
TV_REMOTE_LOG_FORMAT: str = os.environ.get("TV_REMOTE_LOG_FORMAT", "human")  # "json", "human", or "both"
TV_REMOTE_LOG_JSON_FILE: str = os.environ.get("TV_REMOTE_LOG_JSON_FILE", "")
TV_REMOTE_LOG_HUMAN_OUTPUT: str = os.environ.get("TV_REMOTE_LOG_HUMAN_OUTPUT", "stderr")  # "stdout", "stderr", or path

# Performance Instrumentation
TV_REMOTE_PERF_TRACKING: bool = os.environ.get("TV_REMOTE_PERF_TRACKING", "true").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("TV_REMOTE_PERF_THRESHOLD_MS", "500")
TV_REMOTE_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 500
