"""Core Shell implementation: preprocessing, sequencing, pipelines and jobs."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..adapters import JsonFileBackend, StorageBackend
from ..config import ShellConfig
from ..environment import EnvironmentStack
from ..exceptions import ErrorKind, InvalidOperation, ShellError
from ..jobs import Job, JobTable, MessageBus
from ..nodes import VirtualDirectory
from ..path_utils import ROOT
from ..permissions import Permission
from ..result import Result
from ..session import AliasTable, CommandHistory, Session
from ..shell_parser import CommandSequence, OutputRedirect, Pipeline, Segment, parse_line
from ..users import UserRegistry
from ..vfs import VirtualFileSystem
from .common import (
    CommandContext,
    CommandHandler,
    CommandOutput,
    Console,
    OptionalService,
    ScriptContext,
    ServiceBundle,
)
from .preprocess import preprocess
from .registry import BUILTINS, CommandDefinition, CommandRegistry
from .validation import validate_invocation

logger = logging.getLogger(__name__)


class Shell:
    """Executes command lines against the virtual filesystem."""

    def __init__(
        self,
        *,
        config: ShellConfig | None = None,
        vfs: VirtualFileSystem | None = None,
        backend: StorageBackend | None = None,
        registry: CommandRegistry | None = None,
        console: Console | None = None,
        services: Mapping[str, Any] | None = None,
    ) -> None:
        self.config = config or ShellConfig()
        if vfs is None:
            if backend is None and self.config.storage_path is not None:
                backend = JsonFileBackend(self.config.storage_path)
            vfs = VirtualFileSystem(UserRegistry(self.config.default_user), backend=backend)
            vfs.initialize(self.config.default_user)
            loaded = vfs.load()
            if not loaded.success:
                logger.warning("starting with a fresh file system: %s", loaded.error)
        self.vfs = vfs
        self.users = vfs.users
        self.env = EnvironmentStack()
        self.session = Session(self.env, self.config)
        self.aliases = AliasTable(self.config.max_alias_depth)
        self.history = CommandHistory(self.config.history_size)
        self.bus = MessageBus()
        self.jobs = JobTable(self.bus)
        self.console = console or Console()
        if registry is None:
            # Import command modules for their side effects (registration)
            from . import commands  # noqa: F401

            registry = BUILTINS.copy()
        self.registry = registry
        self._provided = dict(services or {})
        self.services = ServiceBundle(
            vfs=self.vfs,
            env=self.env,
            session=self.session,
            aliases=self.aliases,
            history=self.history,
            users=self.users,
            jobs=self.jobs,
            bus=self.bus,
            registry=self.registry,
            executor=self,
            console=self.console,
            config=self.config,
        )
        self._resolve_optional(self.registry.iter_commands())

    # ------------------------------------------------------------------
    # Command registration
    # ------------------------------------------------------------------
    def _resolve_optional(self, definitions: Iterable[CommandDefinition]) -> None:
        for definition in definitions:
            for name in definition.requires:
                if name not in self.services.optional:
                    self.services.optional[name] = OptionalService(name, self._provided.get(name))

    def register_command(
        self,
        name: str,
        handler: CommandHandler,
        *,
        description: str = "",
        **contract: Any,
    ) -> CommandDefinition:
        definition = CommandDefinition(name=name, handler=handler, description=description, **contract)
        self.registry.register(definition)
        self._resolve_optional([definition])
        return definition

    def available_commands(self) -> list[str]:
        return self.registry.names()

    @property
    def user(self) -> str:
        return self.session.current_user

    def prompt(self) -> str:
        return f"{self.user}@{self.env.get('HOST') or self.config.host_name}:{self.vfs.pwd()}$ "

    def enter_home(self) -> None:
        """Move to the current user's home directory when it is reachable."""
        home = self.env.get("HOME")
        if home and self.vfs.is_dir(home):
            try:
                self.vfs.cd(home, user=self.user)
                return
            except ShellError:
                logger.debug("home %s not accessible for %s", home, self.user)
        self.vfs.cwd = self.vfs.root

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------
    async def execute(
        self,
        line: str,
        *,
        script: ScriptContext | None = None,
        record_history: bool = True,
        user: str | None = None,
        job: Job | None = None,
        env: EnvironmentStack | None = None,
    ) -> Result[str]:
        """Run one command line and return the aggregated foreground result.

        ``user``, ``job`` and ``env`` default to the foreground session; nested
        lines of a background job pass the job's own values so they stay bound
        to it while the foreground moves on.
        """
        user = user or self.user
        env = env or self.env
        try:
            text = preprocess(line, env=env, aliases=self.aliases, script=script)
            if script is None and record_history:
                self.history.add(line)
            sequence = parse_line(text)
        except ShellError as exc:
            logger.debug("rejected %r: %s", line, exc)
            return Result.from_error(exc)
        logger.debug("executing %d pipeline(s) from %r as %s", len(sequence), text, user)
        return await self._run_sequence(sequence, script=script, user=user, job=job, env=env)

    async def _run_sequence(
        self,
        sequence: CommandSequence,
        *,
        script: ScriptContext | None,
        user: str,
        job: Job | None,
        env: EnvironmentStack,
    ) -> Result[str]:
        outputs: list[str] = []
        final: Result[str] = Result.ok("")
        ran = False
        modified = False
        last_success = True
        items = sequence.items
        for index, item in enumerate(items):
            if index > 0:
                previous = items[index - 1].operator
                if previous == "&&" and not last_success:
                    continue
                if previous == "||" and last_success:
                    continue
            if ran and not final.success and final.error:
                self.console.notify(final.error or "unknown error")
            if item.pipeline.background:
                result = self._start_background(item.pipeline, script=script, user=user, env=env)
            else:
                result = await self._run_pipeline(item.pipeline, user=user, script=script, job=job, env=env)
            ran = True
            final = result
            last_success = result.success
            modified = modified or result.state_modified
            if result.success and result.data:
                outputs.append(result.data)
            if not result.success and item.operator in (None, ";"):
                break
        return Result(
            success=final.success,
            data="".join(outputs),
            error=final.error,
            kind=final.kind,
            state_modified=modified,
        )

    def _start_background(
        self,
        pipeline: Pipeline,
        *,
        script: ScriptContext | None,
        user: str,
        env: EnvironmentStack,
    ) -> Result[str]:
        # Snapshot of the caller's active frame; the job never writes to the caller's stack.
        job_env = EnvironmentStack(env.all())

        async def body(job: Job) -> Result[str]:
            return await self._run_pipeline(pipeline, user=user, script=script, job=job, env=job_env)

        job = self.jobs.spawn(pipeline.describe(), body, self._report_job)
        pipeline.job_id = job.id
        return Result.ok(f"[{job.id}] Backgrounded.\n")

    def _report_job(self, job: Job, result: Result) -> None:
        if result.success:
            self.console.notify(f"[Job {job.id} finished]")
        else:
            self.console.notify(f"[Job {job.id} finished with error: {result.error or 'Unknown error'}]")

    async def _run_pipeline(
        self,
        pipeline: Pipeline,
        *,
        user: str,
        script: ScriptContext | None,
        job: Job | None = None,
        env: EnvironmentStack | None = None,
    ) -> Result[str]:
        stdin: str | None = None
        if pipeline.input_redirect is not None:
            try:
                stdin = self.vfs.read_file(pipeline.input_redirect, user=user)
            except ShellError as exc:
                return Result.from_error(exc, prefix="cannot open input: ")
        result: Result[str] = Result.ok("")
        modified = False
        for segment in pipeline.segments:
            if job is not None and job.token.cancelled:
                return Result.fail(f"job {job.id} cancelled")
            result = await self._run_segment(segment, stdin, user=user, script=script, job=job, env=env)
            if not result.success:
                return result
            if result.state_modified:
                saved = self.vfs.save()
                if not saved.success:
                    return Result.fail(f"failed to save file system state: {saved.error}", ErrorKind.SYSTEM)
                modified = True
            stdin = result.data or ""
        output = result.data or ""
        if pipeline.output_redirect is None:
            return Result.ok(output, state_modified=modified)
        try:
            self._write_redirect(pipeline.output_redirect, output, user=user)
        except ShellError as exc:
            return Result.from_error(exc)
        saved = self.vfs.save()
        if not saved.success:
            return Result.fail(f"failed to save redirect: {saved.error}", ErrorKind.SYSTEM)
        return Result.ok("", state_modified=True)

    def _write_redirect(self, redirect: OutputRedirect, output: str, *, user: str) -> None:
        target = self.vfs.normalize(redirect.path)
        if target == ROOT:
            raise InvalidOperation("cannot redirect output to '/'")
        parent = self.vfs.ensure_directory(target.parent, user=user)
        existing = parent.children.get(target.name)
        if isinstance(existing, VirtualDirectory):
            raise InvalidOperation(f"'{redirect.path}': Is a directory")
        if existing is not None:
            self.vfs.check_access(existing, user, Permission.WRITE)
        else:
            self.vfs.check_access(parent, user, Permission.WRITE)
        self.vfs.write_file(target, output, user=user, append=redirect.append)

    async def _run_segment(
        self,
        segment: Segment,
        stdin: str | None,
        *,
        user: str,
        script: ScriptContext | None,
        job: Job | None,
        env: EnvironmentStack | None,
    ) -> Result[str]:
        name = segment.name
        definition = self.registry.get(name)
        if definition is None:
            return Result.fail(f"{name}: command not found")
        missing = [req for req in definition.requires if not self.services.service(req).present]
        if missing:
            return Result.fail(f"{name}: required service unavailable: {', '.join(missing)}")
        try:
            flags, args, paths = validate_invocation(definition, segment.args, vfs=self.vfs, user=user)
            context = CommandContext(
                name=name,
                args=args,
                flags=flags,
                services=self.services,
                user=user,
                paths=paths,
                stdin=stdin if definition.consumes_stdin else None,
                job=job,
                script=script,
                environment=env,
            )
            value = definition.handler(context)
            if inspect.isawaitable(value):
                value = await value
        except ShellError as exc:
            prefix = "" if str(exc).startswith(f"{name}: ") else f"{name}: "
            return Result.from_error(exc, prefix=prefix)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # unexpected failure path
            logger.exception("command %s failed unexpectedly", name)
            return Result.fail(f"{name}: {exc}")
        return _to_result(value)

    # ------------------------------------------------------------------
    # Scripts and lifecycle
    # ------------------------------------------------------------------
    async def run_script(
        self,
        path: str,
        args: Iterable[str] = (),
        *,
        parent: ScriptContext | None = None,
        user: str | None = None,
        job: Job | None = None,
        env: EnvironmentStack | None = None,
    ) -> Result[str]:
        """Execute each non-blank, non-comment line of ``path`` in a private frame.

        Inside a background job pass its ``job``, ``user`` and ``env``: the
        frame is pushed on the job's stack and the token is checked before
        every line.
        """
        user = user or self.user
        env = env or self.env
        depth = parent.depth + 1 if parent else 1
        if depth > self.config.max_script_depth:
            return Result.fail(f"maximum script depth ({self.config.max_script_depth}) exceeded")
        try:
            content = self.vfs.read_file(path, user=user)
        except ShellError as exc:
            return Result.from_error(exc)
        script = ScriptContext(source=path, args=tuple(args), depth=depth)
        outputs: list[str] = []
        env.push()
        try:
            for index, raw in enumerate(content.splitlines()):
                line = raw.strip()
                if not line or line.startswith("#"):
                    continue
                if job is not None and job.token.cancelled:
                    logger.info("script %s stopped before line %d: job %d cancelled", path, index + 1, job.id)
                    return Result(
                        success=False,
                        data="".join(outputs),
                        error=f"Script '{path}' cancelled before line {index + 1}: job {job.id} cancelled",
                        kind=ErrorKind.EXECUTION,
                    )
                result = await self.execute(line, script=script.at_line(index), user=user, job=job, env=env)
                if result.data:
                    outputs.append(result.data)
                if not result.success:
                    return Result(
                        success=False,
                        data="".join(outputs),
                        error=f"Script '{path}' error on line {index + 1}: {result.error}",
                        kind=result.kind,
                    )
        finally:
            env.pop()
        return Result.ok("".join(outputs))

    async def shutdown(self) -> None:
        await self.jobs.shutdown()


def _to_result(value: CommandOutput) -> Result[str]:
    if isinstance(value, Result):
        if value.success and value.data is None:
            return Result.ok("", state_modified=value.state_modified)
        return value
    if value is None:
        return Result.ok("")
    return Result.ok(str(value))


__all__ = ["Shell"]
