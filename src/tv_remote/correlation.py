"""
Operation ids for tying log lines to one remote-control action.

Each connect() or command runs inside an operation context. The id lives in a
contextvar, so it follows the awaiting task across transport, protocol and
diagnostic log lines without being passed around explicitly. These ids are
for logs only; wire-level request ids are allocated by the RequestCorrelator.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "ensure_operation_id",
    "get_operation_id",
    "new_operation_id",
    "operation_context",
    "set_operation_id",
]

_operation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation_id",
    default=None,
)


def new_operation_id() -> str:
    """Return a fresh operation id (UUID4 hex, no dashes)."""
    return uuid.uuid4().hex


def get_operation_id() -> str | None:
    return _operation_id.get()


def set_operation_id(operation_id: str | None) -> None:
    _operation_id.set(operation_id)


@contextmanager
def operation_context(operation_id: str | None = None) -> Generator[str]:
    """
    Scope an operation id to a block.

    A nested context inherits the enclosing id unless one is passed explicitly,
    so a reconnect triggered from inside a command keeps the command's id.
    The previous id is restored on exit.

    Example:
        with operation_context() as op_id:
            await adapter.connect()
    """
    previous_id = get_operation_id()
    if operation_id is None:
        operation_id = previous_id or new_operation_id()

    set_operation_id(operation_id)
    try:
        yield operation_id
    finally:
        set_operation_id(previous_id)


def ensure_operation_id() -> str:
    """Return the current operation id, creating one for task entry points."""
    current_id = get_operation_id()
    if current_id is None:
        current_id = new_operation_id()
        set_operation_id(current_id)
    return current_id
