"""User and group registry backing the permission engine."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field

from .exceptions import ExecutionError, ValidationError

logger = logging.getLogger(__name__)

ROOT_USER = "root"

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def _digest(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


@dataclass
class User:
    name: str
    primary_group: str
    password_hash: str | None = None


@dataclass
class Group:
    name: str
    members: set[str] = field(default_factory=set)


class UserRegistry:
    """In-memory ``/etc/passwd`` + ``/etc/group``."""

    def __init__(self, default_user: str | None = None) -> None:
        self._users: dict[str, User] = {}
        self._groups: dict[str, Group] = {}
        self.add_user(ROOT_USER)
        if default_user and default_user != ROOT_USER:
            self.add_user(default_user)

    def _check_name(self, name: str, what: str) -> None:
        if not _NAME_RE.match(name):
            raise ValidationError(f"invalid {what} name: '{name}'")

    def add_user(self, name: str, *, password: str | None = None) -> User:
        self._check_name(name, "user")
        if name in self._users:
            raise ExecutionError(f"user '{name}' already exists")
        if name not in self._groups:
            self._groups[name] = Group(name)
        self._groups[name].members.add(name)
        user = User(
            name=name,
            primary_group=name,
            password_hash=_digest(password) if password else None,
        )
        self._users[name] = user
        logger.info("created user %s", name)
        return user

    def has_user(self, name: str) -> bool:
        return name in self._users

    def get_user(self, name: str) -> User:
        try:
            return self._users[name]
        except KeyError as exc:
            raise ExecutionError(f"user '{name}' does not exist") from exc

    def users(self) -> list[str]:
        return sorted(self._users)

    def check_password(self, name: str, password: str | None) -> bool:
        user = self.get_user(name)
        if user.password_hash is None:
            return True
        return password is not None and _digest(password) == user.password_hash

    def add_group(self, name: str) -> Group:
        self._check_name(name, "group")
        if name in self._groups:
            raise ExecutionError(f"group '{name}' already exists")
        group = Group(name)
        self._groups[name] = group
        logger.info("created group %s", name)
        return group

    def has_group(self, name: str) -> bool:
        return name in self._groups

    def add_to_group(self, user: str, group: str) -> None:
        self.get_user(user)
        if group not in self._groups:
            raise ExecutionError(f"group '{group}' does not exist")
        self._groups[group].members.add(user)

    def primary_group(self, user: str) -> str:
        found = self._users.get(user)
        return found.primary_group if found else user

    def is_member(self, user: str, group: str) -> bool:
        found = self._groups.get(group)
        if found is not None and user in found.members:
            return True
        return self.primary_group(user) == group

    def groups_for(self, user: str) -> list[str]:
        return sorted(name for name, group in self._groups.items() if user in group.members)


__all__ = ["ROOT_USER", "User", "Group", "UserRegistry"]
