"""User, group and session commands."""

from __future__ import annotations

from ...permissions import PRIVATE_DIR_MODE
from ...result import Result
from ...users import ROOT_USER
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec, FlagDefinition


def _require_root(ctx: CommandContext) -> None:
    if ctx.user != ROOT_USER:
        raise ctx.fail(f"only {ROOT_USER} can do that")


def _authenticate(ctx: CommandContext, user: str, password: str | None) -> None:
    users = ctx.services.users
    if not users.has_user(user):
        raise ctx.fail(f"user '{user}' does not exist")
    if not users.check_password(user, password):
        raise ctx.fail("Authentication failure")


@BUILTINS.command("whoami", description="Print the current user", args=ArgSpec(exact=0))
def whoami(ctx: CommandContext) -> str:
    return f"{ctx.user}\n"


@BUILTINS.command("su", description="Switch user, keeping the previous session", args=ArgSpec(max=2))
def su(ctx: CommandContext) -> None:
    target = ctx.args[0] if ctx.args else ROOT_USER
    password = ctx.args[1] if len(ctx.args) > 1 else None
    if ctx.user != ROOT_USER:
        _authenticate(ctx, target, password)
    elif not ctx.services.users.has_user(target):
        raise ctx.fail(f"user '{target}' does not exist")
    ctx.services.session.push_user(target)
    ctx.shell.enter_home()


@BUILTINS.command("logout", description="Return to the previous user session", args=ArgSpec(exact=0))
def logout(ctx: CommandContext) -> str:
    session = ctx.services.session
    if len(session.stack) == 1:
        raise ctx.fail("no other user session to return to")
    left = session.pop_user()
    ctx.shell.enter_home()
    return f"Logged out from {left}.\n"


@BUILTINS.command("login", description="Start a fresh session as another user", args=ArgSpec(min=1, max=2))
def login(ctx: CommandContext) -> None:
    target = ctx.args[0]
    _authenticate(ctx, target, ctx.args[1] if len(ctx.args) > 1 else None)
    ctx.services.session.replace(target)
    ctx.shell.enter_home()


@BUILTINS.command("useradd", description="Create a user and home directory", args=ArgSpec(min=1, max=2))
def useradd(ctx: CommandContext) -> Result[str]:
    _require_root(ctx)
    name = ctx.args[0]
    password = ctx.args[1] if len(ctx.args) > 1 else None
    ctx.services.users.add_user(name, password=password)
    home = ctx.vfs.mkdir(f"/home/{name}", user=ROOT_USER, parents=True, exist_ok=True)
    home.owner = name
    home.group = ctx.services.users.primary_group(name)
    home.mode = PRIVATE_DIR_MODE
    return Result.ok(f"User '{name}' registered.\n", state_modified=True)


@BUILTINS.command("groupadd", description="Create a group", args=ArgSpec(exact=1))
def groupadd(ctx: CommandContext) -> str:
    _require_root(ctx)
    ctx.services.users.add_group(ctx.args[0])
    return f"Group '{ctx.args[0]}' created.\n"


@BUILTINS.command(
    "usermod",
    description="Add a user to a supplementary group",
    flags=[
        FlagDefinition("append", short="-a"),
        FlagDefinition("group", short="-G", takes_value=True),
    ],
    args=ArgSpec(exact=1, error="usage: usermod -aG GROUP USER"),
)
def usermod(ctx: CommandContext) -> str:
    _require_root(ctx)
    if not ctx.flags["append"] or not ctx.flags["group"]:
        raise ctx.fail("usage: usermod -aG GROUP USER")
    group, user = ctx.flags["group"], ctx.args[0]
    ctx.services.users.add_to_group(user, group)
    return f"Added user '{user}' to group '{group}'.\n"


@BUILTINS.command("groups", description="Print group memberships", args=ArgSpec(max=1))
def groups(ctx: CommandContext) -> str:
    user = ctx.args[0] if ctx.args else ctx.user
    ctx.services.users.get_user(user)
    return " ".join(ctx.services.users.groups_for(user)) + "\n"
