"""Command-line interface for vshell."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import ShellConfig
from .result import Result
from .shell import Console, Shell


LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--user", help="Log in as this user (default: Guest or VSHELL_DEFAULT_USER).")
    parser.add_argument(
        "--storage",
        type=Path,
        help="Persist the virtual file system to this JSON file.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging verbosity (default: WARNING or VSHELL_LOG_LEVEL).",
    )


def _build_config(args: argparse.Namespace) -> ShellConfig:
    return ShellConfig.from_env().with_overrides(
        default_user=args.user,
        storage_path=args.storage,
        log_level=args.log_level,
    )


def _build_shell(config: ShellConfig) -> Shell:
    logging.basicConfig(level=config.log_level.upper(), format=LOG_FORMAT)
    console = Console(sink=lambda line: print(line, file=sys.stderr))
    return Shell(config=config, console=console)


def _emit(result: Result[str]) -> None:
    if result.data:
        sys.stdout.write(result.data)
    if not result.success and result.error:
        sys.stderr.write(f"{result.error}\n")


async def _exec_line(shell: Shell, line: str) -> int:
    try:
        result = await shell.execute(line)
        _emit(result)
        return result.exit_code
    finally:
        await shell.shutdown()


async def _repl(shell: Shell) -> int:
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, shell.prompt())
            except (EOFError, KeyboardInterrupt):
                return 0
            if line.strip() in {":q", "exit", "quit"}:
                return 0
            _emit(await shell.execute(line))
    finally:
        await shell.shutdown()


def _run_exec(args: argparse.Namespace) -> int:
    shell = _build_shell(_build_config(args))
    return asyncio.run(_exec_line(shell, args.command))


def _run_shell(args: argparse.Namespace) -> int:
    shell = _build_shell(_build_config(args))
    return asyncio.run(_repl(shell))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="vshell")
    subparsers = parser.add_subparsers(dest="command_name", required=True)

    exec_parser = subparsers.add_parser("exec", help="Run a single command line")
    _add_common_flags(exec_parser)
    exec_parser.add_argument("command", help="Command line to execute")
    exec_parser.set_defaults(func=_run_exec)

    shell_parser = subparsers.add_parser("shell", help="Start an interactive shell")
    _add_common_flags(shell_parser)
    shell_parser.set_defaults(func=_run_shell)

    args = parser.parse_args(argv)
    try:
        exit_code = args.func(args)
    except ValueError as exc:
        parser.error(str(exc))
    raise SystemExit(exit_code)


__all__ = ["main"]
