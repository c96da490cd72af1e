"""Environment variable and alias commands."""

from __future__ import annotations

from ...result import Result
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec


def _key_value(args: list[str]) -> tuple[str, str]:
    """Accept ``NAME=value words`` as well as ``NAME value words``."""
    if "=" in args[0]:
        name, _, value = " ".join(args).partition("=")
        return name, value
    return args[0], " ".join(args[1:])


@BUILTINS.command("set", description="Set or list environment variables")
def set_(ctx: CommandContext) -> Result[str] | str:
    if not ctx.args:
        variables = ctx.env.all()
        return "".join(f'{key}="{variables[key]}"\n' for key in sorted(variables))
    name, value = _key_value(ctx.args)
    result = ctx.env.set(name, value)
    if not result.success:
        return Result.fail(f"set: {result.error}", result.kind)
    return Result.ok("")


@BUILTINS.command("unset", description="Remove environment variables", args=ArgSpec(min=1))
def unset(ctx: CommandContext) -> None:
    for name in ctx.args:
        ctx.env.unset(name)


@BUILTINS.command("env", description="Print the environment", args=ArgSpec(exact=0))
def env(ctx: CommandContext) -> str:
    variables = ctx.env.all()
    return "".join(f"{key}={variables[key]}\n" for key in sorted(variables))


@BUILTINS.command("alias", description="Define or list aliases")
def alias(ctx: CommandContext) -> str | None:
    aliases = ctx.services.aliases
    if not ctx.args:
        defined = aliases.all()
        return "".join(f"alias {name}='{defined[name]}'\n" for name in sorted(defined))
    if "=" not in ctx.args[0]:
        value = aliases.get(ctx.args[0])
        if value is None:
            raise ctx.fail(f"{ctx.args[0]}: not found")
        return f"alias {ctx.args[0]}='{value}'\n"
    name, value = _key_value(ctx.args)
    aliases.set(name, value)
    return None


@BUILTINS.command("unalias", description="Remove aliases", args=ArgSpec(min=1))
def unalias(ctx: CommandContext) -> None:
    missing = [name for name in ctx.args if not ctx.services.aliases.remove(name)]
    if missing:
        raise ctx.fail(f"{missing[0]}: not found")
