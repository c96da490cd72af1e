"""Shell package: command contract, registry and executor."""

from .common import CommandContext, Console, OptionalService, ScriptContext, ServiceBundle
from .core import Shell
from .registry import BUILTINS, ArgSpec, CommandDefinition, CommandRegistry, FlagDefinition, PathRule

__all__ = [
    "ArgSpec",
    "BUILTINS",
    "CommandContext",
    "CommandDefinition",
    "CommandRegistry",
    "Console",
    "FlagDefinition",
    "OptionalService",
    "PathRule",
    "ScriptContext",
    "ServiceBundle",
    "Shell",
]
