"""Result type returned by every registry call.

Registry calls never raise into the reconciliation layer. They return
``Ok(value)`` or a ``RegistryError`` describing what went wrong, and the
orchestrator's failure policy decides whether to continue.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(Enum):
    """Category of a failed registry call."""

    NOT_FOUND = "not_found"
    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    INVALID_RESPONSE = "invalid_response"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful call."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class RegistryError:
    """Failed call: network error, timeout, non-2xx status or bad payload."""

    kind: ErrorKind
    message: str
    status_code: int | None = None
    body: str | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} ({self.status_code}): {self.message}"
        return f"{self.kind.value}: {self.message}"


Result = Union[Ok[T], RegistryError]
