"""Metrics module."""

from .registry import (
    record_command,
    record_connection_state,
    record_discovery_failure,
    record_proxy_poll,
    record_reconnect_attempt,
    record_registration,
    record_request,
    start_metrics_server,
)

__all__ = [
    "record_command",
    "record_connection_state",
    "record_discovery_failure",
    "record_proxy_poll",
    "record_reconnect_attempt",
    "record_registration",
    "record_request",
    "start_metrics_server",
]
