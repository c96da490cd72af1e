"""Generic argument and path validation run before every command body."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from ..exceptions import InvalidOperation, NodeNotFound, PermissionDenied, ValidationError
from ..nodes import NodeType, VirtualDirectory
from .common import ValidatedPath
from .registry import CommandDefinition, FlagDefinition, PathRule

if TYPE_CHECKING:  # pragma: no cover
    from ..vfs import VirtualFileSystem


def parse_flags(
    args: list[str], definitions: Iterable[FlagDefinition]
) -> tuple[dict[str, Any], list[str]]:
    """Split ``args`` into declared flags and positionals.

    Unknown dash-prefixed words stay positional (``-5``, ``-``), ``--``
    ends flag parsing, short flags combine (``-la``) and a value flag may
    take the rest of its cluster or the next word (``-n5`` / ``-n 5``).
    """
    definitions = tuple(definitions)
    flags: dict[str, Any] = {d.name: (None if d.takes_value else False) for d in definitions}
    by_short = {d.short: d for d in definitions if d.short}
    by_long = {d.long: d for d in definitions if d.long}
    remaining: list[str] = []
    idx = 0
    while idx < len(args):
        arg = args[idx]
        idx += 1
        if arg == "--":
            remaining.extend(args[idx:])
            break
        if arg.startswith("--"):
            key, sep, inline = arg.partition("=")
            definition = by_long.get(key)
            if definition is None:
                remaining.append(arg)
            elif definition.takes_value:
                if sep:
                    flags[definition.name] = inline
                elif idx < len(args):
                    flags[definition.name] = args[idx]
                    idx += 1
                else:
                    raise ValidationError(f"option '{key}' requires an argument")
            else:
                flags[definition.name] = True
            continue
        if arg.startswith("-") and len(arg) > 1:
            if arg in by_short:
                definition = by_short[arg]
                if definition.takes_value:
                    if idx >= len(args):
                        raise ValidationError(f"option requires an argument -- '{arg[1:]}'")
                    flags[definition.name] = args[idx]
                    idx += 1
                else:
                    flags[definition.name] = True
                continue
            cluster = arg[1:]
            if f"-{cluster[0]}" not in by_short:
                remaining.append(arg)
                continue
            parsed: dict[str, Any] = {}
            for pos, char in enumerate(cluster):
                definition = by_short.get(f"-{char}")
                if definition is None:
                    parsed = {}
                    break
                if definition.takes_value:
                    rest = cluster[pos + 1 :]
                    if rest:
                        parsed[definition.name] = rest
                    elif idx < len(args):
                        parsed[definition.name] = args[idx]
                        idx += 1
                    else:
                        raise ValidationError(f"option requires an argument -- '{char}'")
                    break
                parsed[definition.name] = True
            if parsed:
                flags.update(parsed)
            else:
                remaining.append(arg)
            continue
        remaining.append(arg)
    return flags, remaining


def _indices(rule: PathRule, count: int) -> list[int]:
    if rule.arg_index == "all":
        return list(range(count))
    return [rule.arg_index]


def validate_path_rule(
    rule: PathRule, args: list[str], *, vfs: "VirtualFileSystem", user: str
) -> list[ValidatedPath]:
    """Resolve, then check type, permissions, parent permissions and ownership."""
    validated: list[ValidatedPath] = []
    for index in _indices(rule, len(args)):
        if index >= len(args):
            if rule.required:
                raise ValidationError("missing path argument")
            continue
        arg = args[index]
        path = vfs.normalize(arg)
        try:
            node = vfs.get_node(path)
        except NodeNotFound:
            if not rule.allow_missing:
                raise NodeNotFound(f"'{arg}': No such file or directory") from None
            node = None
        if node is not None and rule.expected_type is not None and node.node_type is not rule.expected_type:
            if rule.expected_type is NodeType.DIRECTORY:
                raise InvalidOperation(f"'{arg}': Not a directory")
            raise InvalidOperation(f"'{arg}': Is a directory")
        if node is not None:
            for permission in rule.permissions:
                if not vfs.has_permission(node, user, permission):
                    raise PermissionDenied(f"'{arg}': Permission denied")
        if rule.parent_permissions:
            parent = node.parent if node is not None else _existing_parent(vfs, path, arg)
            if parent is not None:
                for permission in rule.parent_permissions:
                    if not vfs.has_permission(parent, user, permission):
                        raise PermissionDenied(f"'{arg}': Permission denied")
        if rule.ownership_required and node is not None and not vfs.can_modify(node, user):
            raise PermissionDenied(f"changing permissions of '{arg}': Operation not permitted")
        validated.append(ValidatedPath(arg=arg, path=path, node=node))
    return validated


def _existing_parent(vfs: "VirtualFileSystem", path: PurePosixPath, arg: str) -> VirtualDirectory | None:
    try:
        parent = vfs.get_node(path.parent)
    except NodeNotFound:
        raise NodeNotFound(f"'{arg}': No such file or directory") from None
    if not isinstance(parent, VirtualDirectory):
        raise InvalidOperation(f"'{arg}': Not a directory")
    return parent


def validate_invocation(
    definition: CommandDefinition,
    args: list[str],
    *,
    vfs: "VirtualFileSystem",
    user: str,
) -> tuple[dict[str, Any], list[str], list[ValidatedPath]]:
    """Run flags, argument count and path rules; raise ``ValidationError`` prefixed by the command name."""
    try:
        flags, positionals = parse_flags(args, definition.flags)
        if definition.args is not None:
            problem = definition.args.check(len(positionals))
            if problem:
                raise ValidationError(problem)
        validated: list[ValidatedPath] = []
        for rule in definition.paths:
            validated.extend(validate_path_rule(rule, positionals, vfs=vfs, user=user))
    except ValidationError as exc:
        error = type(exc)(f"{definition.name}: {exc}")
        raise error from exc
    return flags, positionals, validated


__all__ = ["parse_flags", "validate_invocation", "validate_path_rule"]
