"""Owner/group/other permission model for filesystem nodes."""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import ValidationError
from .users import ROOT_USER, UserRegistry

if TYPE_CHECKING:  # pragma: no cover
    from .nodes import VirtualNode


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"

    @property
    def bit(self) -> int:
        return _BITS[self]


_BITS = {Permission.READ: 4, Permission.WRITE: 2, Permission.EXECUTE: 1}

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755
PRIVATE_DIR_MODE = 0o700

_SYMBOLIC_RE = re.compile(r"^([r-][w-][x-]){3}$")
_OCTAL_RE = re.compile(r"^0?[0-7]{3}$")


def mode_to_string(mode: int) -> str:
    """Render ``0o750`` as ``rwxr-x---``."""
    chars = []
    for shift in (6, 3, 0):
        triplet = (mode >> shift) & 0o7
        chars.append("r" if triplet & 4 else "-")
        chars.append("w" if triplet & 2 else "-")
        chars.append("x" if triplet & 1 else "-")
    return "".join(chars)


def parse_mode(text: str) -> int:
    """Parse a 9-char ``rwxrwxrwx`` string or a 3-digit octal mode."""
    if _SYMBOLIC_RE.match(text):
        mode = 0
        for idx, char in enumerate(text):
            if char != "-":
                mode |= 1 << (8 - idx)
        return mode
    if _OCTAL_RE.match(text):
        return int(text, 8)
    raise ValidationError(f"invalid mode: '{text}'")


def applicable_triplet(mode: int, *, is_owner: bool, in_group: bool) -> int:
    if is_owner:
        return (mode >> 6) & 0o7
    if in_group:
        return (mode >> 3) & 0o7
    return mode & 0o7


class PermissionChecker:
    """Evaluates access for a user against a node's owner, group and mode."""

    def __init__(self, users: UserRegistry) -> None:
        self.users = users

    def allows(self, node: "VirtualNode", user: str, permission: Permission) -> bool:
        if user == ROOT_USER:
            return True
        triplet = applicable_triplet(
            node.mode,
            is_owner=user == node.owner,
            in_group=self.users.is_member(user, node.group),
        )
        return bool(triplet & permission.bit)

    def can_modify(self, node: "VirtualNode", user: str) -> bool:
        """Owner/group/mode changes require ownership, not the write bit."""
        return user == ROOT_USER or user == node.owner


__all__ = [
    "Permission",
    "PermissionChecker",
    "DEFAULT_FILE_MODE",
    "DEFAULT_DIR_MODE",
    "PRIVATE_DIR_MODE",
    "mode_to_string",
    "parse_mode",
    "applicable_triplet",
]
