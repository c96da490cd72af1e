"""Uniform success/error value returned across component edges."""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .exceptions import ErrorKind, ShellError

T = TypeVar("T")


@dataclass(slots=True)
class Result(Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None
    state_modified: bool = False

    @classmethod
    def ok(cls, data: T | None = None, *, state_modified: bool = False) -> "Result[T]":
        return cls(success=True, data=data, state_modified=state_modified)

    @classmethod
    def fail(
        cls,
        error: str,
        kind: ErrorKind = ErrorKind.EXECUTION,
        *,
        data: T | None = None,
    ) -> "Result[T]":
        return cls(success=False, data=data, error=error, kind=kind)

    @classmethod
    def from_error(cls, exc: ShellError, *, prefix: str = "") -> "Result[T]":
        message = f"{prefix}{exc}" if prefix else str(exc)
        return cls(success=False, error=message, kind=exc.kind)

    @property
    def exit_code(self) -> int:
        if self.success:
            return 0
        if self.kind is ErrorKind.PARSE:
            return 2
        return 1


def returns_result(func: Callable[..., Any]) -> Callable[..., Result[Any]]:
    """Translate :class:`ShellError` raised by ``func`` into a failed Result."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Result[Any]:
        try:
            value = func(*args, **kwargs)
        except ShellError as exc:
            return Result.from_error(exc)
        if isinstance(value, Result):
            return value
        return Result.ok(value)

    return wrapper


__all__ = ["Result", "returns_result"]
