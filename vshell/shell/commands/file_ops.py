"""File manipulation commands."""

from __future__ import annotations

from ...exceptions import NodeNotFound
from ...nodes import NodeType, VirtualDirectory
from ...permissions import Permission
from ...result import Result
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec, FlagDefinition, PathRule


@BUILTINS.command("touch", description="Create empty file or update its timestamp", args=ArgSpec(min=1))
def touch(ctx: CommandContext) -> Result[str]:
    for path in ctx.args:
        ctx.vfs.touch(path, user=ctx.user)
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "mkdir",
    description="Create directories",
    flags=[FlagDefinition("parents", short="-p", long="--parents")],
    args=ArgSpec(min=1, error="missing operand"),
)
def mkdir(ctx: CommandContext) -> Result[str]:
    parents = ctx.flags["parents"]
    for path in ctx.args:
        ctx.vfs.mkdir(path, user=ctx.user, parents=parents, exist_ok=parents)
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "rm",
    description="Remove files or directories",
    flags=[
        FlagDefinition("recursive", short="-r", long="--recursive"),
        FlagDefinition("recursive", short="-R"),
        FlagDefinition("force", short="-f", long="--force"),
    ],
    args=ArgSpec(min=1, error="missing operand"),
)
def rm(ctx: CommandContext) -> Result[str]:
    for target in ctx.args:
        try:
            ctx.vfs.remove(target, user=ctx.user, recursive=ctx.flags["recursive"])
        except NodeNotFound:
            if not ctx.flags["force"]:
                raise ctx.fail(f"cannot remove '{target}': No such file or directory") from None
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "rmdir",
    description="Remove empty directories",
    args=ArgSpec(min=1, error="missing operand"),
    paths=[PathRule("all", NodeType.DIRECTORY, parent_permissions=(Permission.WRITE,))],
)
def rmdir(ctx: CommandContext) -> Result[str]:
    for validated in ctx.paths:
        node = validated.node
        if isinstance(node, VirtualDirectory) and node.children:
            raise ctx.fail(f"failed to remove '{validated.arg}': Directory not empty")
        ctx.vfs.remove(validated.path, user=ctx.user)
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "mv",
    description="Move or rename files",
    args=ArgSpec(exact=2, error="expects a source and destination"),
    paths=[PathRule(0)],
)
def mv(ctx: CommandContext) -> Result[str]:
    source, target = ctx.args
    ctx.vfs.move(source, target, user=ctx.user)
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "cp",
    description="Copy files and directories",
    flags=[
        FlagDefinition("recursive", short="-r", long="--recursive"),
        FlagDefinition("recursive", short="-R"),
    ],
    args=ArgSpec(exact=2, error="expects a source and destination"),
    paths=[PathRule(0, permissions=(Permission.READ,))],
)
def cp(ctx: CommandContext) -> Result[str]:
    source, target = ctx.args
    ctx.vfs.copy(source, target, user=ctx.user, recursive=ctx.flags["recursive"])
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "chmod",
    description="Change file mode (rwxr-x--- or 750)",
    args=ArgSpec(exact=2, error="usage: chmod MODE FILE"),
    paths=[PathRule(1, ownership_required=True)],
)
def chmod(ctx: CommandContext) -> Result[str]:
    mode, path = ctx.args
    ctx.vfs.chmod(path, mode, user=ctx.user)
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "chown",
    description="Change file owner (root only)",
    args=ArgSpec(exact=2, error="usage: chown OWNER FILE"),
    paths=[PathRule(1)],
)
def chown(ctx: CommandContext) -> Result[str]:
    owner, path = ctx.args
    ctx.vfs.chown(path, owner, user=ctx.user)
    return Result.ok("", state_modified=True)


@BUILTINS.command(
    "chgrp",
    description="Change group ownership",
    args=ArgSpec(exact=2, error="usage: chgrp GROUP FILE"),
    paths=[PathRule(1, ownership_required=True)],
)
def chgrp(ctx: CommandContext) -> Result[str]:
    group, path = ctx.args
    ctx.vfs.chgrp(path, group, user=ctx.user)
    return Result.ok("", state_modified=True)
