"""vshell package: simulated Unix shell over a permissioned in-memory filesystem."""

from .adapters import JsonFileBackend, MemoryStorageBackend, StorageBackend
from .config import ShellConfig
from .environment import EnvironmentStack
from .exceptions import (
    ErrorKind,
    ExecutionError,
    ParseError,
    ShellError,
    StorageError,
    ValidationError,
)
from .jobs import CancellationToken, JobTable, MessageBus
from .result import Result
from .session import AliasTable, CommandHistory, Session
from .shell import CommandContext, Shell
from .users import UserRegistry
from .vfs import VirtualFileSystem

__all__ = [
    "Shell",
    "CommandContext",
    "VirtualFileSystem",
    "UserRegistry",
    "EnvironmentStack",
    "Session",
    "AliasTable",
    "CommandHistory",
    "JobTable",
    "MessageBus",
    "CancellationToken",
    "Result",
    "ShellConfig",
    "ErrorKind",
    "ShellError",
    "ParseError",
    "ValidationError",
    "ExecutionError",
    "StorageError",
    "StorageBackend",
    "MemoryStorageBackend",
    "JsonFileBackend",
]
