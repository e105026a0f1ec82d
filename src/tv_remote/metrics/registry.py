"""Prometheus metrics for TV remote adapters."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

CONNECTION_STATES: Final = ("disconnected", "connecting", "connected", "registering", "reconnecting")

tv_remote_connection_state: Final = Gauge(  # type: ignore[assignment]
    "tv_remote_connection_state",
    "Current adapter connection state",
    ["tv_type", "state"],
)

tv_remote_commands_total: Final = Counter(  # type: ignore[assignment]
    "tv_remote_commands_total",
    "Remote-control commands issued",
    ["tv_type", "command", "outcome"],
)

tv_remote_requests_total: Final = Counter(  # type: ignore[assignment]
    "tv_remote_requests_total",
    "Correlated requests settled",
    ["tv_type", "outcome"],
)

tv_remote_request_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "tv_remote_request_latency_seconds",
    "Correlated request round-trip latency in seconds",
    ["tv_type"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

tv_remote_reconnect_attempts_total: Final = Counter(  # type: ignore[assignment]
    "tv_remote_reconnect_attempts_total",
    "Automatic reconnect attempts",
    ["tv_type", "outcome"],
)

tv_remote_registrations_total: Final = Counter(  # type: ignore[assignment]
    "tv_remote_registrations_total",
    "LG pairing/registration attempts",
    ["mode", "outcome"],
)

tv_remote_proxy_polls_total: Final = Counter(  # type: ignore[assignment]
    "tv_remote_proxy_polls_total",
    "LG proxy state polls",
    ["outcome"],
)

tv_remote_discovery_failures_total: Final = Counter(  # type: ignore[assignment]
    "tv_remote_discovery_failures_total",
    "Best-effort app/input discovery calls that failed and returned empty",
    ["tv_type", "kind"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9410) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_connection_state(tv_type: str, state: str) -> None:
    """Set the gauge to 1 for the current state and 0 for the others."""
    for s in CONNECTION_STATES:
        value = 1 if s == state else 0
        tv_remote_connection_state.labels(tv_type=tv_type, state=s).set(value)  # type: ignore[no-untyped-call]


def record_command(tv_type: str, command: str, outcome: str) -> None:
    tv_remote_commands_total.labels(tv_type=tv_type, command=command, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_request(tv_type: str, outcome: str, latency_seconds: float | None = None) -> None:
    """Record a settled correlated request; latency only for answered ones."""
    tv_remote_requests_total.labels(tv_type=tv_type, outcome=outcome).inc()  # type: ignore[no-untyped-call]
    if latency_seconds is not None:
        tv_remote_request_latency_seconds.labels(tv_type=tv_type).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_reconnect_attempt(tv_type: str, outcome: str) -> None:
    tv_remote_reconnect_attempts_total.labels(tv_type=tv_type, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_registration(mode: str, outcome: str) -> None:
    tv_remote_registrations_total.labels(mode=mode, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_proxy_poll(outcome: str) -> None:
    tv_remote_proxy_polls_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_discovery_failure(tv_type: str, kind: str) -> None:
    tv_remote_discovery_failures_total.labels(tv_type=tv_type, kind=kind).inc()  # type: ignore[no-untyped-call]
