"""Shared shell types."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from ..exceptions import ExecutionError
from ..result import Result

if TYPE_CHECKING:
    from ..config import ShellConfig
    from ..environment import EnvironmentStack
    from ..jobs import CancellationToken, Job, JobTable, MessageBus
    from ..nodes import VirtualNode
    from ..session import AliasTable, CommandHistory, Session
    from ..users import UserRegistry
    from ..vfs import VirtualFileSystem
    from .core import Shell
    from .registry import CommandRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScriptContext:
    """Immutable script state threaded into nested ``run`` calls."""

    source: str
    args: tuple[str, ...] = ()
    depth: int = 1
    line_index: int = 0

    def at_line(self, index: int) -> "ScriptContext":
        return ScriptContext(self.source, self.args, self.depth, index)


@dataclass(frozen=True, slots=True)
class OptionalService:
    name: str
    impl: Any = None

    @property
    def present(self) -> bool:
        return self.impl is not None


class Console:
    """Sink for asynchronous status lines such as job completion notices."""

    def __init__(self, sink: Callable[[str], None] | None = None) -> None:
        self.sink = sink
        self._pending: list[str] = []

    def notify(self, line: str) -> None:
        logger.debug("console: %s", line)
        if self.sink is not None:
            self.sink(line)
        else:
            self._pending.append(line)

    def drain(self) -> list[str]:
        lines, self._pending = self._pending, []
        return lines


@dataclass
class ServiceBundle:
    vfs: "VirtualFileSystem"
    env: "EnvironmentStack"
    session: "Session"
    aliases: "AliasTable"
    history: "CommandHistory"
    users: "UserRegistry"
    jobs: "JobTable"
    bus: "MessageBus"
    registry: "CommandRegistry"
    executor: "Shell"
    console: Console
    config: "ShellConfig"
    optional: dict[str, OptionalService] = field(default_factory=dict)

    def service(self, name: str) -> OptionalService:
        return self.optional.get(name, OptionalService(name))


@dataclass(slots=True)
class ValidatedPath:
    arg: str
    path: PurePosixPath
    node: "VirtualNode | None"


@dataclass
class CommandContext:
    name: str
    args: list[str]
    flags: dict[str, Any]
    services: ServiceBundle
    user: str
    paths: list[ValidatedPath] = field(default_factory=list)
    stdin: str | None = None
    job: "Job | None" = None
    script: ScriptContext | None = None
    environment: "EnvironmentStack | None" = None

    @property
    def vfs(self) -> "VirtualFileSystem":
        return self.services.vfs

    @property
    def env(self) -> "EnvironmentStack":
        """The stack this invocation reads and writes; background jobs carry their own."""
        if self.environment is not None:
            return self.environment
        return self.services.env

    @property
    def job_id(self) -> int | None:
        return self.job.id if self.job is not None else None

    @property
    def token(self) -> "CancellationToken | None":
        return self.job.token if self.job is not None else None

    @property
    def shell(self) -> "Shell":
        return self.services.executor

    def check_cancelled(self) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled()

    def fail(self, message: str) -> ExecutionError:
        return ExecutionError(f"{self.name}: {message}")


CommandOutput = Result[str] | str | None
CommandHandler = Callable[[CommandContext], Any]


__all__ = [
    "CommandContext",
    "CommandHandler",
    "CommandOutput",
    "Console",
    "OptionalService",
    "ScriptContext",
    "ServiceBundle",
    "ValidatedPath",
]
