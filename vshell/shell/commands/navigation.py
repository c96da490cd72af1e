"""Navigation-oriented commands."""

from __future__ import annotations

import time

from ...nodes import NodeType
from ...permissions import Permission
from ...vfs import DirEntry
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec, FlagDefinition, PathRule


def _format_ls(entries: list[DirEntry], *, long_format: bool) -> str:
    if not entries:
        return ""
    if long_format:
        rows = []
        for entry in entries:
            stamp = time.strftime("%Y-%m-%d %H:%M", time.localtime(entry.mtime))
            kind = "d" if entry.is_dir else "-"
            rows.append(
                f"{kind}{entry.permissions} {entry.owner} {entry.group} {entry.size:>6} {stamp} {entry.name}"
            )
        return "\n".join(rows) + "\n"
    return "  ".join(f"{entry.name}/" if entry.is_dir else entry.name for entry in entries) + "\n"


@BUILTINS.command("pwd", description="Print working directory", args=ArgSpec(exact=0))
def pwd(ctx: CommandContext) -> str:
    return f"{ctx.vfs.pwd()}\n"


@BUILTINS.command(
    "cd",
    description="Change directory",
    args=ArgSpec(max=1, error="too many arguments"),
    paths=[PathRule(0, NodeType.DIRECTORY, (Permission.EXECUTE,), required=False)],
)
def cd(ctx: CommandContext) -> None:
    target = ctx.args[0] if ctx.args else ctx.env.get("HOME") or "/"
    ctx.vfs.cd(target, user=ctx.user)


@BUILTINS.command(
    "ls",
    description="List directory contents",
    flags=[
        FlagDefinition("long", short="-l", long="--long"),
        FlagDefinition("all", short="-a", long="--all"),
    ],
    paths=[PathRule("all", required=False)],
)
def ls(ctx: CommandContext) -> str:
    targets = ctx.args or [ctx.vfs.pwd()]
    blocks: list[str] = []
    for target in targets:
        entries = ctx.vfs.ls(target, user=ctx.user, show_hidden=ctx.flags["all"])
        listing = _format_ls(entries, long_format=ctx.flags["long"])
        if len(targets) > 1:
            listing = f"{target}:\n{listing}"
        blocks.append(listing)
    return "\n".join(blocks)


@BUILTINS.command(
    "tree",
    description="Render tree view",
    args=ArgSpec(max=1),
    paths=[PathRule(0, NodeType.DIRECTORY, (Permission.EXECUTE,), required=False)],
)
def tree(ctx: CommandContext) -> str:
    target = ctx.args[0] if ctx.args else None
    return ctx.vfs.tree(target, user=ctx.user) + "\n"
