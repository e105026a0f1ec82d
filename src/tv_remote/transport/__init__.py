"""Transport package - WebSocket/HTTP primitives, request correlation, reconnect policy."""

from tv_remote.transport.correlator import RequestCorrelator
from tv_remote.transport.exceptions import (
    BridgeUnreachableError,
    ConnectTimeoutError,
    DisconnectedError,
    ProxyBackendError,
    RequestTimeoutError,
    TransportError,
)
from tv_remote.transport.rest_client import RestClient, is_success
from tv_remote.transport.retry_policy import ReconnectPolicy
from tv_remote.transport.socket_abstraction import WebSocketConnection, unverified_ssl_context

__all__ = [
    "BridgeUnreachableError",
    "ConnectTimeoutError",
    "DisconnectedError",
    "ProxyBackendError",
    "ReconnectPolicy",
    "RequestCorrelator",
    "RequestTimeoutError",
    "RestClient",
    "TransportError",
    "WebSocketConnection",
    "is_success",
    "unverified_ssl_context",
]
