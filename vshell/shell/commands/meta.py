"""Meta commands for shell introspection."""

from __future__ import annotations

from ...result import Result
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec, FlagDefinition


@BUILTINS.command("help", description="Show available commands", args=ArgSpec(max=1))
def help(ctx: CommandContext) -> str:  # noqa: A001
    registry = ctx.services.registry
    if ctx.args:
        definition = registry.get(ctx.args[0])
        if definition is None:
            raise ctx.fail(f"no help for '{ctx.args[0]}': command not found")
        body = definition.help_text or definition.description or definition.name
        return f"{body}\n"
    lines = ["Available commands:"]
    for definition in registry.iter_commands():
        if definition.description:
            lines.append(f"  {definition.name} - {definition.description}")
        else:
            lines.append(f"  {definition.name}")
    return "\n".join(lines) + "\n"


@BUILTINS.command(
    "history",
    description="Display or clear the command history",
    flags=[FlagDefinition("clear", short="-c", long="--clear")],
    args=ArgSpec(exact=0),
)
def history(ctx: CommandContext) -> str:
    entries = ctx.services.history
    if ctx.flags["clear"]:
        entries.clear()
        return "Command history cleared.\n"
    return "".join(f"  {index:>3}  {line}\n" for index, line in enumerate(entries.entries(), start=1))


@BUILTINS.command("true", description="Do nothing, successfully")
def true(ctx: CommandContext) -> None:
    return None


@BUILTINS.command("false", description="Do nothing, unsuccessfully")
def false(ctx: CommandContext) -> Result[str]:
    return Result.fail("", data="")


@BUILTINS.command("save", description="Persist the file system now", args=ArgSpec(exact=0))
def save(ctx: CommandContext) -> Result[str]:
    if not ctx.vfs.persistence.attached:
        raise ctx.fail("no persistence backend configured")
    result = ctx.vfs.save()
    if not result.success:
        return result
    return Result.ok("File system saved.\n")
