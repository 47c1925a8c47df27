"""Status codes and the error type that carries them."""

from __future__ import annotations

from enum import IntEnum


class Code(IntEnum):
    """Canonical RPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class StatusError(Exception):
    """An error that carries a status code and a message."""

    def __init__(self, code: Code | int, message: str) -> None:
        self.code = Code(code)
        self.message = message
        super().__init__(self.code, message)

    def __str__(self) -> str:
        return f"rpc error: code = {self.code.name} desc = {self.message}"

    def __repr__(self) -> str:
        return f"StatusError({self.code.name}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatusError):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.code, self.message))


def status_from_error(error: BaseException | None) -> StatusError | None:
    """Return the StatusError behind ``error``, following its causes.

    Returns None when ``error`` is None or carries no status.
    """
    seen: set[int] = set()
    current = error
    while current is not None and id(current) not in seen:
        if isinstance(current, StatusError):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None