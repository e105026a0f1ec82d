"""Exception types for remote-control protocol errors.

Every error raised by an adapter derives from TVRemoteError, so callers can
catch the whole family while still telling the specific failures apart.
Transport-level errors live in tv_remote.transport.exceptions.
"""

from __future__ import annotations


class TVRemoteError(Exception):
    """Base exception for all TV remote errors."""


class UnknownCommandError(TVRemoteError):
    """Command is outside the vocabulary, or this protocol has no mapping for it.

    Raised before anything is sent over the wire.

    Attributes:
        command: The rejected command as given by the caller
        tv_type: Adapter that rejected it

    """

    def __init__(self, command: object, tv_type: str = "") -> None:
        self.command: object = command
        self.tv_type: str = tv_type
        suffix = f" for {tv_type}" if tv_type else ""
        super().__init__(f"Unknown command{suffix}: {command}")


class RegistrationFailedError(TVRemoteError):
    """LG pairing was rejected, timed out, or could not be attempted.

    Attributes:
        reason: Human-readable failure reason

    """

    def __init__(self, reason: str) -> None:
        self.reason: str = reason
        super().__init__(reason)


class UnsupportedOperationError(TVRemoteError):
    """Operation has no equivalent in this protocol or mode.

    Attributes:
        operation: Name of the operation
        tv_type: Adapter that does not support it

    """

    def __init__(self, operation: str, tv_type: str, detail: str = "") -> None:
        self.operation: str = operation
        self.tv_type: str = tv_type
        message = f"{operation} is not supported by the {tv_type} adapter"
        super().__init__(f"{message}: {detail}" if detail else message)


class TVConnectionStateError(TVRemoteError):
    """Operation conflicts with the adapter's current connection state.

    Raised when connect() is called while another connect() is in flight.

    Attributes:
        state: Connection state when the error occurred

    """

    def __init__(self, reason: str, state: str = "unknown") -> None:
        self.reason: str = reason
        self.state: str = state
        super().__init__(f"{reason} (state: {state})")
