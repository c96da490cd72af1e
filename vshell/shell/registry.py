"""Declarative command contract and registry."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Literal

from ..nodes import NodeType
from ..permissions import Permission
from .common import CommandHandler


@dataclass(frozen=True, slots=True)
class FlagDefinition:
    name: str
    short: str | None = None
    long: str | None = None
    takes_value: bool = False


@dataclass(frozen=True, slots=True)
class ArgSpec:
    exact: int | None = None
    min: int | None = None
    max: int | None = None
    error: str | None = None

    def check(self, count: int) -> str | None:
        """Return an error message when ``count`` positionals are not acceptable."""
        if self.exact is not None and count != self.exact:
            return self.error or f"expected exactly {self.exact} argument(s), got {count}"
        if self.min is not None and count < self.min:
            return self.error or f"expected at least {self.min} argument(s), got {count}"
        if self.max is not None and count > self.max:
            return self.error or f"expected at most {self.max} argument(s), got {count}"
        return None


@dataclass(frozen=True, slots=True)
class PathRule:
    arg_index: int | Literal["all"]
    expected_type: NodeType | None = None
    permissions: tuple[Permission, ...] = ()
    ownership_required: bool = False
    allow_missing: bool = False
    parent_permissions: tuple[Permission, ...] = ()
    required: bool = True


@dataclass(slots=True)
class CommandDefinition:
    name: str
    handler: CommandHandler
    description: str = ""
    help_text: str = ""
    flags: tuple[FlagDefinition, ...] = ()
    args: ArgSpec | None = None
    paths: tuple[PathRule, ...] = ()
    consumes_stdin: bool = False
    requires: tuple[str, ...] = ()


class CommandRegistry:
    """Maps command names to their definitions."""

    def __init__(self, definitions: Iterable[CommandDefinition] = ()) -> None:
        self._commands: dict[str, CommandDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: CommandDefinition) -> CommandDefinition:
        self._commands[definition.name] = definition
        return definition

    def command(
        self,
        name: str,
        *,
        description: str = "",
        help_text: str = "",
        flags: Iterable[FlagDefinition] = (),
        args: ArgSpec | None = None,
        paths: Iterable[PathRule] = (),
        consumes_stdin: bool = False,
        requires: Iterable[str] = (),
    ) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator variant for registering shell commands."""

        def decorator(func: CommandHandler) -> CommandHandler:
            self.register(
                CommandDefinition(
                    name=name,
                    handler=func,
                    description=description,
                    help_text=help_text or (func.__doc__ or "").strip(),
                    flags=tuple(flags),
                    args=args,
                    paths=tuple(paths),
                    consumes_stdin=consumes_stdin,
                    requires=tuple(requires),
                )
            )
            return func

        return decorator

    def get(self, name: str) -> CommandDefinition | None:
        return self._commands.get(name)

    def names(self) -> list[str]:
        return sorted(self._commands)

    def iter_commands(self) -> Iterable[CommandDefinition]:
        return tuple(self._commands[name] for name in self.names())

    def copy(self) -> "CommandRegistry":
        return CommandRegistry(replace(definition) for definition in self._commands.values())

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)


BUILTINS = CommandRegistry()


__all__ = [
    "ArgSpec",
    "BUILTINS",
    "CommandDefinition",
    "CommandRegistry",
    "FlagDefinition",
    "PathRule",
]
