"""Background jobs, cooperative cancellation and per-job mailboxes."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from .exceptions import ErrorKind, JobCancelled, JobNotFound
from .result import Result

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-shot flag a job checks between segments and inside long waits."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise JobCancelled("job cancelled")

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return ``True`` when woken by ``cancel``."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return False
        return True


@dataclass
class Job:
    id: int
    command_text: str
    token: CancellationToken = field(default_factory=CancellationToken)
    task: asyncio.Task | None = None
    started: float = field(default_factory=time.time)


class MessageBus:
    """FIFO mailboxes keyed by job id; reading drains the mailbox."""

    def __init__(self) -> None:
        self._mailboxes: dict[int, deque[str]] = {}

    def register(self, job_id: int) -> None:
        self._mailboxes.setdefault(job_id, deque())

    def unregister(self, job_id: int) -> None:
        self._mailboxes.pop(job_id, None)

    def has(self, job_id: int) -> bool:
        return job_id in self._mailboxes

    def post(self, job_id: int, message: str) -> Result[None]:
        mailbox = self._mailboxes.get(job_id)
        if mailbox is None:
            return Result.from_error(JobNotFound(f"job not found: {job_id}"))
        mailbox.append(message)
        return Result.ok()

    def drain(self, job_id: int) -> list[str]:
        mailbox = self._mailboxes.get(job_id)
        if not mailbox:
            return []
        messages = list(mailbox)
        mailbox.clear()
        return messages


JobBody = Callable[[Job], Awaitable[Result]]
JobCallback = Callable[[Job, Result], None]


class JobTable:
    """Registry of running background jobs with monotonically increasing ids."""

    def __init__(self, bus: MessageBus | None = None) -> None:
        self.bus = bus or MessageBus()
        self._ids = itertools.count(1)
        self._jobs: dict[int, Job] = {}

    def next_id(self) -> int:
        return next(self._ids)

    def spawn(self, command_text: str, body: JobBody, on_done: JobCallback | None = None) -> Job:
        """Start ``body`` as an asyncio task without waiting for it."""
        job = Job(id=self.next_id(), command_text=command_text)
        self._jobs[job.id] = job
        self.bus.register(job.id)
        job.task = asyncio.create_task(self._run(job, body, on_done))
        logger.info("job %s started: %s", job.id, command_text)
        return job

    async def _run(self, job: Job, body: JobBody, on_done: JobCallback | None) -> None:
        try:
            result = await body(job)
        except asyncio.CancelledError:
            result = Result.fail("job cancelled", ErrorKind.EXECUTION)
        except Exception as exc:
            logger.exception("job %s crashed", job.id)
            result = Result.fail(str(exc), ErrorKind.EXECUTION)
        finally:
            self._forget(job.id)
        logger.info("job %s finished (success=%s)", job.id, result.success)
        if on_done is not None:
            on_done(job, result)

    def _forget(self, job_id: int) -> None:
        self._jobs.pop(job_id, None)
        self.bus.unregister(job_id)

    def list(self) -> list[Job]:
        return [self._jobs[job_id] for job_id in sorted(self._jobs)]

    def get(self, job_id: int) -> Job | None:
        return self._jobs.get(job_id)

    def kill(self, job_id: int) -> Result[None]:
        job = self._jobs.get(job_id)
        if job is None:
            return Result.from_error(JobNotFound(f"job not found: {job_id}"))
        job.token.cancel()
        self._forget(job_id)
        logger.info("job %s killed", job_id)
        return Result.ok()

    async def shutdown(self) -> None:
        """Cancel every job and wait for their tasks to unwind."""
        jobs = list(self._jobs.values())
        tasks = []
        for job in jobs:
            job.token.cancel()
            if job.task is not None:
                job.task.cancel()
                tasks.append(job.task)
            self._forget(job.id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def __len__(self) -> int:
        return len(self._jobs)


__all__ = ["CancellationToken", "Job", "JobTable", "MessageBus"]
