"""Line rewriting applied before lexing."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from .common import ScriptContext

if TYPE_CHECKING:  # pragma: no cover
    from ..environment import EnvironmentStack
    from ..session import AliasTable

logger = logging.getLogger(__name__)

_VARIABLE_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)|\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_POSITIONAL_RE = re.compile(r"\$([@#1-9])")


def strip_comment(line: str) -> str:
    """Cut at ``#`` outside quotes when it opens the line or follows whitespace."""
    in_quote: str | None = None
    for idx, char in enumerate(line):
        if in_quote:
            if char == in_quote:
                in_quote = None
        elif char in ("'", '"'):
            in_quote = char
        elif char == "#" and (idx == 0 or line[idx - 1].isspace()):
            return line[:idx].strip()
    return line.strip()


def substitute_script_args(line: str, args: tuple[str, ...] | list[str]) -> str:
    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key == "@":
            return " ".join(args)
        if key == "#":
            return str(len(args))
        position = int(key)
        return args[position - 1] if position <= len(args) else ""

    return _POSITIONAL_RE.sub(replace, line)


def expand_variables(line: str, env: "EnvironmentStack") -> str:
    return _VARIABLE_RE.sub(lambda m: env.get(m.group(1) or m.group(2)), line)


def preprocess(
    line: str,
    *,
    env: "EnvironmentStack",
    aliases: "AliasTable",
    script: ScriptContext | None = None,
) -> str:
    """Comments, then script positionals, then variables, then aliases.

    Raises :class:`ParseError` when alias expansion loops.
    """
    text = strip_comment(line)
    if not text:
        return ""
    if script is not None:
        text = substitute_script_args(text, script.args)
    text = expand_variables(text, env)
    resolved = aliases.resolve(text)
    if resolved != text:
        logger.debug("alias expanded %r to %r", text, resolved)
    return resolved


__all__ = ["preprocess", "strip_comment", "substitute_script_args", "expand_variables"]
