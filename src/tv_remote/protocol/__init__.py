"""Protocol package - command vocabulary, per-TV encodings and error types.

Public API:
- Command vocabulary (Command, parse_command)
- Exception hierarchy rooted at TVRemoteError
"""

from tv_remote.protocol.commands import Command, parse_command
from tv_remote.protocol.exceptions import (
    RegistrationFailedError,
    TVConnectionStateError,
    TVRemoteError,
    UnknownCommandError,
    UnsupportedOperationError,
)

__all__ = [
    "Command",
    "RegistrationFailedError",
    "TVConnectionStateError",
    "TVRemoteError",
    "UnknownCommandError",
    "UnsupportedOperationError",
    "parse_command",
]
