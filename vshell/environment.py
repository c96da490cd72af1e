"""Stack of variable frames scoped by script invocation."""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Mapping

from .exceptions import ErrorKind
from .result import Result

logger = logging.getLogger(__name__)

VARIABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EnvironmentStack:
    """Variables live in the top frame; ``push`` opens a private copy."""

    def __init__(self, base: Mapping[str, str] | None = None) -> None:
        self._frames: list[dict[str, str]] = [dict(base or {})]

    @property
    def depth(self) -> int:
        return len(self._frames)

    def _active(self) -> dict[str, str]:
        return self._frames[-1]

    def get(self, name: str) -> str:
        return self._active().get(name, "")

    def set(self, name: str, value: str) -> Result[None]:
        if not VARIABLE_NAME_RE.match(name):
            return Result.fail(
                f"Invalid variable name: '{name}'. Must start with a letter or underscore, "
                "followed by letters, numbers, or underscores.",
                ErrorKind.VALIDATION,
            )
        self._active()[name] = value
        return Result.ok()

    def unset(self, name: str) -> None:
        self._active().pop(name, None)

    def push(self) -> None:
        self._frames.append(copy.deepcopy(self._active()))

    def pop(self) -> None:
        if len(self._frames) == 1:
            logger.warning("attempted to pop the base environment frame")
            return
        self._frames.pop()

    def all(self) -> dict[str, str]:
        return dict(self._active())

    def load(self, variables: Mapping[str, str] | None) -> None:
        """Replace the active frame with ``variables``."""
        self._frames[-1] = dict(variables or {})

    def rebase(self, variables: Mapping[str, str] | None) -> None:
        """Replace every frame with ``variables`` while keeping the stack depth."""
        self._frames = [dict(variables or {}) for _ in self._frames]


__all__ = ["EnvironmentStack", "VARIABLE_NAME_RE"]
