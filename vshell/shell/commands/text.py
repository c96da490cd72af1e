"""Text processing commands."""

from __future__ import annotations

import re

from ...nodes import NodeType
from ...permissions import Permission
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec, FlagDefinition, PathRule

_READABLE_FILES = PathRule("all", NodeType.FILE, (Permission.READ,), required=False)


def _inputs(ctx: CommandContext, paths: list[str] | None = None) -> list[tuple[str | None, str]]:
    """Return ``(name, text)`` for each named file, or stdin when none is given."""
    if paths is None:
        if ctx.paths:
            return [(p.arg, ctx.vfs.read_file(p.path, user=ctx.user)) for p in ctx.paths]
        return [(None, ctx.stdin or "")]
    if paths:
        return [(path, ctx.vfs.read_file(path, user=ctx.user)) for path in paths]
    return [(None, ctx.stdin or "")]


def _lines(text: str) -> list[str]:
    return text.splitlines()


def _join(lines: list[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


@BUILTINS.command(
    "echo",
    description="Print arguments",
    flags=[FlagDefinition("no_newline", short="-n")],
)
def echo(ctx: CommandContext) -> str:
    text = " ".join(ctx.args)
    return text if ctx.flags["no_newline"] else f"{text}\n"


@BUILTINS.command(
    "cat",
    description="Concatenate files or standard input",
    paths=[_READABLE_FILES],
    consumes_stdin=True,
)
def cat(ctx: CommandContext) -> str:
    return "".join(text for _, text in _inputs(ctx))


@BUILTINS.command(
    "wc",
    description="Count lines, words and bytes",
    flags=[
        FlagDefinition("lines", short="-l", long="--lines"),
        FlagDefinition("words", short="-w", long="--words"),
        FlagDefinition("bytes", short="-c", long="--bytes"),
    ],
    paths=[_READABLE_FILES],
    consumes_stdin=True,
)
def wc(ctx: CommandContext) -> str:
    selected = [key for key in ("lines", "words", "bytes") if ctx.flags[key]] or ["lines", "words", "bytes"]
    rows = []
    for name, text in _inputs(ctx):
        counts = {
            "lines": text.count("\n"),
            "words": len(text.split()),
            "bytes": len(text.encode("utf-8")),
        }
        fields = [str(counts[key]) for key in selected]
        if name is not None:
            fields.append(name)
        rows.append(" ".join(fields))
    return _join(rows)


def _slice_content(content: str, *, count: int, mode: str, tail: bool) -> str:
    if mode == "lines":
        lines = content.splitlines(keepends=True)
        if count == 0:
            return ""
        return "".join(lines[-count:] if tail else lines[:count])
    if count == 0:
        return ""
    return content[-count:] if tail else content[:count]


def _range_command(ctx: CommandContext, *, tail: bool) -> str:
    mode = "bytes" if ctx.flags["bytes"] is not None else "lines"
    raw = ctx.flags["bytes"] if mode == "bytes" else ctx.flags["lines"]
    try:
        count = int(raw) if raw is not None else 10
    except ValueError:
        raise ctx.fail(f"invalid number: '{raw}'") from None
    if count < 0:
        raise ctx.fail(f"invalid number: '{raw}'")
    inputs = _inputs(ctx)
    blocks = []
    for name, text in inputs:
        chunk = _slice_content(text, count=count, mode=mode, tail=tail)
        if len(inputs) > 1:
            chunk = f"==> {name} <==\n{chunk}"
        blocks.append(chunk)
    return "\n".join(blocks) if len(blocks) > 1 else "".join(blocks)


_RANGE_FLAGS = [
    FlagDefinition("lines", short="-n", long="--lines", takes_value=True),
    FlagDefinition("bytes", short="-c", long="--bytes", takes_value=True),
]


@BUILTINS.command(
    "head",
    description="Output the first part of files",
    flags=_RANGE_FLAGS,
    paths=[_READABLE_FILES],
    consumes_stdin=True,
)
def head(ctx: CommandContext) -> str:
    return _range_command(ctx, tail=False)


@BUILTINS.command(
    "tail",
    description="Output the last part of files",
    flags=_RANGE_FLAGS,
    paths=[_READABLE_FILES],
    consumes_stdin=True,
)
def tail(ctx: CommandContext) -> str:
    return _range_command(ctx, tail=True)


@BUILTINS.command(
    "grep",
    description="Print lines matching a pattern",
    flags=[
        FlagDefinition("ignore_case", short="-i", long="--ignore-case"),
        FlagDefinition("invert", short="-v", long="--invert-match"),
        FlagDefinition("line_number", short="-n", long="--line-number"),
        FlagDefinition("count", short="-c", long="--count"),
    ],
    args=ArgSpec(min=1, error="usage: grep [-ivnc] PATTERN [FILE...]"),
    consumes_stdin=True,
)
def grep(ctx: CommandContext) -> str:
    pattern, *files = ctx.args
    try:
        regex = re.compile(pattern, re.IGNORECASE if ctx.flags["ignore_case"] else 0)
    except re.error as exc:
        raise ctx.fail(f"invalid pattern: {exc}") from None
    inputs = _inputs(ctx, files)
    show_names = len(inputs) > 1
    out: list[str] = []
    for name, text in inputs:
        matched = 0
        for number, line in enumerate(_lines(text), start=1):
            if bool(regex.search(line)) == ctx.flags["invert"]:
                continue
            matched += 1
            if ctx.flags["count"]:
                continue
            prefix = f"{name}:" if show_names else ""
            if ctx.flags["line_number"]:
                prefix += f"{number}:"
            out.append(prefix + line)
        if ctx.flags["count"]:
            out.append(f"{name}:{matched}" if show_names else str(matched))
    return _join(out)


@BUILTINS.command(
    "sort",
    description="Sort lines of text",
    flags=[
        FlagDefinition("reverse", short="-r", long="--reverse"),
        FlagDefinition("numeric", short="-n", long="--numeric-sort"),
        FlagDefinition("unique", short="-u", long="--unique"),
    ],
    paths=[_READABLE_FILES],
    consumes_stdin=True,
)
def sort(ctx: CommandContext) -> str:
    lines: list[str] = []
    for _, text in _inputs(ctx):
        lines.extend(_lines(text))
    if ctx.flags["unique"]:
        lines = list(dict.fromkeys(lines))
    if ctx.flags["numeric"]:
        def key(line: str) -> tuple[float, str]:
            match = re.match(r"\s*(-?\d+(?:\.\d+)?)", line)
            return (float(match.group(1)) if match else 0.0, line)

        lines.sort(key=key, reverse=ctx.flags["reverse"])
    else:
        lines.sort(reverse=ctx.flags["reverse"])
    return _join(lines)
