"""Job control and inter-job messaging commands."""

from __future__ import annotations

import asyncio

from ...exceptions import JobCancelled
from ..common import CommandContext
from ..registry import BUILTINS, ArgSpec


def _job_id(ctx: CommandContext, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ctx.fail(f"invalid job ID: {raw}") from None


async def _pause(ctx: CommandContext, seconds: float) -> None:
    if ctx.token is None:
        await asyncio.sleep(seconds)
        return
    if await ctx.token.sleep(seconds):
        raise JobCancelled(f"{ctx.name}: job {ctx.job_id} cancelled")


@BUILTINS.command("ps", description="List background jobs", args=ArgSpec(exact=0))
def ps(ctx: CommandContext) -> str:
    jobs = ctx.services.jobs.list()
    if not jobs:
        return "No active background jobs.\n"
    lines = ["  PID   COMMAND"]
    lines.extend(f"  {str(job.id).ljust(5)} {job.command_text}" for job in jobs)
    return "\n".join(lines) + "\n"


@BUILTINS.command("kill", description="Terminate a background job", args=ArgSpec(exact=1, error="usage: kill JOB_ID"))
def kill(ctx: CommandContext) -> str:
    job_id = _job_id(ctx, ctx.args[0])
    result = ctx.services.jobs.kill(job_id)
    if not result.success:
        raise ctx.fail(result.error or f"job not found: {job_id}")
    return f"Signal sent to terminate job {job_id}.\n"


@BUILTINS.command(
    "post_message",
    description="Send a message to a background job",
    args=ArgSpec(min=2, error="usage: post_message JOB_ID MESSAGE"),
)
def post_message(ctx: CommandContext) -> str:
    job_id = _job_id(ctx, ctx.args[0])
    result = ctx.services.bus.post(job_id, " ".join(ctx.args[1:]))
    if not result.success:
        raise ctx.fail(result.error or f"job not found: {job_id}")
    return f"Message sent to job {job_id}.\n"


@BUILTINS.command("read_messages", description="Drain the current job's mailbox", args=ArgSpec(exact=0))
def read_messages(ctx: CommandContext) -> str:
    if ctx.job_id is None:
        raise ctx.fail("can only be run from within a background job")
    messages = ctx.services.bus.drain(ctx.job_id)
    return "".join(f"{message}\n" for message in messages)


def _duration(ctx: CommandContext, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ctx.fail(f"invalid time interval '{raw}'") from None
    if value < 0:
        raise ctx.fail(f"invalid time interval '{raw}'")
    return value


@BUILTINS.command("sleep", description="Pause for a number of seconds", args=ArgSpec(exact=1))
async def sleep(ctx: CommandContext) -> None:
    await _pause(ctx, _duration(ctx, ctx.args[0]))


@BUILTINS.command("delay", description="Pause for a number of milliseconds", args=ArgSpec(exact=1))
async def delay(ctx: CommandContext) -> None:
    await _pause(ctx, _duration(ctx, ctx.args[0]) / 1000)
