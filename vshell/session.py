"""Session state: active user stack, aliases and command history."""

from __future__ import annotations

import logging
from collections import deque

from .config import ShellConfig
from .environment import EnvironmentStack
from .exceptions import ExecutionError, ParseError

logger = logging.getLogger(__name__)


def user_defaults(user: str, config: ShellConfig) -> dict[str, str]:
    return {
        "USER": user,
        "HOME": f"/home/{user}",
        "HOST": config.host_name,
        "PATH": config.default_path,
    }


class Session:
    """Stack of logged-in users; ``su`` pushes and ``logout`` pops."""

    def __init__(self, env: EnvironmentStack, config: ShellConfig | None = None) -> None:
        self.env = env
        self.config = config or ShellConfig()
        self._users: list[str] = [self.config.default_user]
        self._apply_defaults()

    @property
    def current_user(self) -> str:
        return self._users[-1]

    @property
    def stack(self) -> list[str]:
        return list(self._users)

    def _apply_defaults(self) -> None:
        # Every frame switches user; a script frame popped later must not restore the old one.
        self.env.rebase(user_defaults(self.current_user, self.config))

    def push_user(self, user: str) -> None:
        self._users.append(user)
        logger.info("session switched to %s", user)
        self._apply_defaults()

    def pop_user(self) -> str:
        """Return to the previous user; the login user cannot be popped."""
        if len(self._users) == 1:
            raise ExecutionError("no other user session to return to")
        left = self._users.pop()
        logger.info("session for %s closed, back to %s", left, self.current_user)
        self._apply_defaults()
        return left

    def replace(self, user: str) -> None:
        """Clear the stack and start a fresh session for ``user``."""
        self._users = [user]
        logger.info("logged in as %s", user)
        self._apply_defaults()


class AliasTable:
    def __init__(self, max_depth: int = 10) -> None:
        self.max_depth = max_depth
        self._aliases: dict[str, str] = {}

    def set(self, name: str, value: str) -> None:
        if not name or not name.strip() or any(ch.isspace() for ch in name):
            raise ExecutionError(f"invalid alias name: '{name}'")
        self._aliases[name] = value

    def remove(self, name: str) -> bool:
        return self._aliases.pop(name, None) is not None

    def get(self, name: str) -> str | None:
        return self._aliases.get(name)

    def all(self) -> dict[str, str]:
        return dict(self._aliases)

    def resolve(self, line: str) -> str:
        """Expand the leading command word until it no longer names an alias.

        Raises :class:`ParseError` when the word is still an alias after ``max_depth`` expansions.
        """
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return line
        original = parts[0]
        command = original
        rest = parts[1] if len(parts) > 1 else ""
        count = 0
        while command in self._aliases and count < self.max_depth:
            expansion = self._aliases[command].strip().split(maxsplit=1)
            command = expansion[0] if expansion else ""
            alias_args = expansion[1] if len(expansion) > 1 else ""
            rest = " ".join(part for part in (alias_args, rest) if part)
            count += 1
        if command in self._aliases:
            raise ParseError(f"alias loop detected for '{original}'")
        return " ".join(part for part in (command, rest) if part)


class CommandHistory:
    """Bounded history that skips consecutive duplicates."""

    def __init__(self, size: int = 50) -> None:
        self._entries: deque[str] = deque(maxlen=size)

    def add(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        if self._entries and self._entries[-1] == line:
            return
        self._entries.append(line)

    def entries(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["Session", "AliasTable", "CommandHistory", "user_defaults"]
