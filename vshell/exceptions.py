"""Exception hierarchy used inside vshell components.

Exceptions never leave a component edge: they are translated into
:class:`vshell.result.Result` values by the public operations.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    PARSE = "parse"
    VALIDATION = "validation"
    EXECUTION = "execution"
    SYSTEM = "system"


class ShellError(Exception):
    """Base class for every error raised by vshell."""

    kind: ErrorKind = ErrorKind.EXECUTION


class ParseError(ShellError):
    """Malformed syntax: unterminated quote, dangling operator, alias loop."""

    kind = ErrorKind.PARSE


class ValidationError(ShellError):
    """Wrong argument count, bad path or denied access."""

    kind = ErrorKind.VALIDATION


class NodeNotFound(ValidationError):
    pass


class NodeExists(ValidationError):
    pass


class InvalidOperation(ValidationError):
    pass


class PermissionDenied(ValidationError):
    pass


class ExecutionError(ShellError):
    """Command-specific runtime failure."""

    kind = ErrorKind.EXECUTION


class JobNotFound(ExecutionError):
    pass


class JobCancelled(ExecutionError):
    pass


class StorageError(ShellError):
    """Persistence failure or corrupted tree snapshot."""

    kind = ErrorKind.SYSTEM


__all__ = [
    "ErrorKind",
    "ShellError",
    "ParseError",
    "ValidationError",
    "NodeNotFound",
    "NodeExists",
    "InvalidOperation",
    "PermissionDenied",
    "ExecutionError",
    "JobNotFound",
    "JobCancelled",
    "StorageError",
]
