"""Transport-layer exception types.

Extends the protocol exception hierarchy with failures of the WebSocket and
HTTP primitives: connection establishment, correlated request expiry, and
operations invalidated by a disconnect.
"""

from __future__ import annotations

from tv_remote.protocol.exceptions import TVRemoteError


class TransportError(TVRemoteError):
    """Socket- or HTTP-level failure.

    Attributes:
        reason: Specific failure reason
        url: Endpoint involved, when known

    """

    def __init__(self, reason: str, url: str = "") -> None:
        self.reason: str = reason
        self.url: str = url
        super().__init__(reason)


class ConnectTimeoutError(TransportError):
    """Neither open-success nor open-failure happened within the connect timeout.

    Attributes:
        timeout_seconds: Timeout that was exceeded

    """

    def __init__(self, url: str, timeout_seconds: float) -> None:
        self.timeout_seconds: float = timeout_seconds
        super().__init__(f"Connection timed out after {timeout_seconds}s ({url})", url=url)


class DisconnectedError(TVRemoteError):
    """Operation attempted without a connection, or invalidated by a disconnect.

    Attributes:
        reason: Why the operation could not complete

    """

    def __init__(self, reason: str = "Not connected") -> None:
        self.reason: str = reason
        super().__init__(reason)


class RequestTimeoutError(TVRemoteError):
    """Correlated request was not answered in time.

    Attributes:
        request_id: Correlation id of the request
        timeout_seconds: Timeout that was exceeded

    """

    def __init__(self, request_id: str, timeout_seconds: float) -> None:
        self.request_id: str = request_id
        self.timeout_seconds: float = timeout_seconds
        super().__init__(f"Request {request_id} timed out after {timeout_seconds}s")


class BridgeUnreachableError(TransportError):
    """Android REST bridge could not be reached or answered with an error status.

    Attributes:
        status: HTTP status when the bridge answered, None on network failure

    """

    def __init__(self, reason: str, url: str = "", status: int | None = None) -> None:
        self.status: int | None = status
        super().__init__(reason, url=url)


class ProxyBackendError(TransportError):
    """LG proxy backend call failed (network, non-2xx, or an `error` payload).

    Attributes:
        action: Backend action that failed
        status: HTTP status when the backend answered

    """

    def __init__(self, reason: str, action: str = "", url: str = "", status: int | None = None) -> None:
        self.action: str = action
        self.status: int | None = status
        super().__init__(reason, url=url)
