"""Script execution and argument fan-out."""

from __future__ import annotations

import shlex

from ...exceptions import ErrorKind
from ...nodes import NodeType
from ...permissions import Permission
from ...result import Result
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec, FlagDefinition, PathRule


@BUILTINS.command(
    "run",
    description="Execute a script file",
    help_text=(
        "Usage: run SCRIPT [ARGS...]\n\n"
        "Runs each line of SCRIPT in a private environment frame. Inside the\n"
        "script $1..$9, $@ and $# expand to the script arguments."
    ),
    args=ArgSpec(min=1, error="usage: run SCRIPT [ARGS...]"),
    paths=[PathRule(0, NodeType.FILE, (Permission.READ, Permission.EXECUTE))],
)
async def run(ctx: CommandContext) -> Result[str]:
    path, *args = ctx.args
    return await ctx.shell.run_script(
        path, args, parent=ctx.script, user=ctx.user, job=ctx.job, env=ctx.env
    )


@BUILTINS.command(
    "xargs",
    description="Build and execute commands from standard input",
    flags=[FlagDefinition("replace", short="-I", takes_value=True)],
    consumes_stdin=True,
)
async def xargs(ctx: CommandContext) -> Result[str]:
    lines = [line.strip() for line in (ctx.stdin or "").strip().splitlines() if line.strip()]
    if not lines:
        return Result.ok("")
    base = ctx.args or ["echo"]
    replace = ctx.flags["replace"]
    if replace:
        commands = [[part.replace(replace, line) for part in base] for line in lines]
    else:
        commands = [[*base, *lines]]
    outputs: list[str] = []
    modified = False
    for words in commands:
        ctx.check_cancelled()
        command_line = shlex.join(words)
        result = await ctx.shell.execute(
            command_line,
            script=ctx.script,
            record_history=False,
            user=ctx.user,
            job=ctx.job,
            env=ctx.env,
        )
        modified = modified or result.state_modified
        if result.data:
            outputs.append(result.data)
        if not result.success:
            return Result.fail(f"xargs: {command_line}: {result.error or 'command failed'}", result.kind or ErrorKind.EXECUTION)
    return Result.ok("".join(outputs), state_modified=modified)
