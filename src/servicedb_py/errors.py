from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class ServicedbPyError(Exception):
    pass


class ValidationError(ServicedbPyError):
    def __init__(self, message: str, *, errors: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.errors = tuple(errors)


class TransportError(ServicedbPyError):
    def __init__(self, *, code: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.status_code = status_code


class ConditionFailedError(TransportError):
    pass


class NotFoundError(TransportError):
    pass
