"""Logging for the TV remote layer.

Dual-format output (JSON lines and human-readable) with operation-id tagging.
Handlers live on the `tv_remote` package logger only. Adapters log through
RemoteLogger and additionally mirror diagnostic lines to the host's on_log
callback.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast

from typing_extensions import override

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "RemoteLogger",
    "configure_logging",
    "get_logger",
    "set_debug",
]


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        from tv_remote.correlation import get_operation_id

        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "operation_id": get_operation_id(),
        }

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            log_data["context"] = dict(context_map)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """`timestamp level [module:line] [op-id] > message | k=v`"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(operation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        from tv_remote.correlation import get_operation_id

        operation_id = get_operation_id()
        record.operation_id = f"[{operation_id[:8]}]" if operation_id else "[--------]"

        formatted = super().format(record)

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            context_str = " | ".join(f"{k}={v}" for k, v in context_map.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


PACKAGE_LOGGER = "tv_remote"

_configured: dict[str, bool] = {"done": False}


def _human_handler(human_output: str) -> logging.Handler:
    if human_output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if human_output == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        human_path = Path(human_output)
        human_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(human_path, mode="a")
    except OSError as e:
        print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stderr)


def configure_logging(
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    *,
    debug: bool | None = None,
) -> logging.Logger:
    """Install the package handlers, replacing any installed earlier.

    Module loggers carry no handlers of their own and propagate here, so one
    call switches format and level for the whole package. Unset arguments fall
    back to the TV_REMOTE_LOG_* / TV_REMOTE_DEBUG settings.
    """
    from tv_remote.const import (
        TV_REMOTE_DEBUG,
        TV_REMOTE_LOG_FORMAT,
        TV_REMOTE_LOG_HUMAN_OUTPUT,
        TV_REMOTE_LOG_JSON_FILE,
    )

    log_format = log_format or TV_REMOTE_LOG_FORMAT
    json_file = json_file or TV_REMOTE_LOG_JSON_FILE or None
    level = logging.DEBUG if (TV_REMOTE_DEBUG if debug is None else debug) else logging.INFO

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(level)

    handlers: list[logging.Handler] = []
    if log_format in ("json", "both") and json_file:
        try:
            json_path = Path(json_file)
            json_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = logging.FileHandler(json_path, mode="a")
            json_handler.setFormatter(JSONFormatter())
            handlers.append(json_handler)
        except OSError as e:
            print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

    if log_format in ("human", "both"):
        human_handler = _human_handler(human_output or TV_REMOTE_LOG_HUMAN_OUTPUT or "stderr")
        human_handler.setFormatter(HumanReadableFormatter())
        handlers.append(human_handler)

    for handler in handlers:
        package_logger.addHandler(handler)
    _configured["done"] = True
    return package_logger


def set_debug(enabled: bool) -> None:
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if enabled else logging.INFO)


class RemoteLogger:
    """Module logger that carries structured context.

    `extra=` mappings are attached to the record as `extra_data` so both
    formatters can render them.
    """

    def __init__(self, name: str) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload = {"extra_data": dict(extra)} if extra else None
        # stacklevel points module/lineno at the caller instead of this wrapper
        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)


def get_logger(name: str) -> RemoteLogger:
    """Logger for one module; the package handlers are installed on first use."""
    if not _configured["done"]:
        _ = configure_logging()
    return RemoteLogger(name)
