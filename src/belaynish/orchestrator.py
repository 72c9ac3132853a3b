"""Per-request flow: submit a job, poll it with progress, hand off the output."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Literal

import anyio

from .config import ProviderConfig
from .errors import (
    BelaynishError,
    ConfigurationError,
    DeliveryError,
    JobFailedError,
    PollTimeoutError,
    TransportError,
)
from .logging import get_logger
from .media import deliver_output
from .model import Job
from .poller import poll_job
from .progress import ProgressReporter
from .provider import JobProvider
from .submitter import submit_job
from .transport import MediaKind, ProgressTarget, Transport

logger = get_logger(__name__)

RunState = Literal["idle", "submitted", "polling", "completed", "failed", "timed_out"]

Deliver = Callable[[Transport, ProgressTarget, MediaKind, Job, str], Awaitable[None]]


class GenerativeJobRun:
    """One submission and one bounded poll loop for a single request.

    ``state`` follows idle -> submitted -> polling -> completed / failed /
    timed_out. Nothing is retried here.
    """

    def __init__(
        self,
        provider: JobProvider,
        *,
        transport: Transport,
        target: ProgressTarget,
        config: ProviderConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self.provider = provider
        self.transport = transport
        self.target = target
        self.config = config
        self.state: RunState = "idle"
        self.job: Job | None = None
        self.reporter = ProgressReporter(transport, target, clock=clock)
        self._clock = clock
        self._sleep = sleep

    def _finish(self, state: RunState, **fields: Any) -> None:
        self.state = state
        logger.info("run.finished", state=state, provider=self.provider.name, **fields)

    async def run(
        self,
        input: Mapping[str, Any],
        *,
        model_ref: str | None = None,
    ) -> Job:
        try:
            job = await submit_job(
                self.provider, input, config=self.config, model_ref=model_ref
            )
        except BelaynishError as exc:
            self._finish("failed", error=str(exc), error_type=exc.__class__.__name__)
            raise
        self.job = job
        self.state = "submitted"

        if job.terminal:
            if job.status == "failed":
                self._finish("failed", job_id=job.id or None, error=job.error)
                raise JobFailedError(job.id, error=job.error, payload=job.raw)
            self._finish("completed", job_id=job.id or None, inline=True)
            return job

        self.state = "polling"
        try:
            job = await poll_job(
                self.provider,
                job.id,
                on_progress=self.reporter,
                interval_s=self.config.poll_interval_s,
                timeout_s=self.config.poll_timeout_s,
                clock=self._clock,
                sleep=self._sleep,
            )
        except PollTimeoutError as exc:
            self._finish("timed_out", job_id=exc.job_id, fetches=exc.fetches)
            raise
        except BelaynishError as exc:
            self._finish(
                "failed",
                job_id=job.id,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise
        self.job = job
        self._finish("completed", job_id=job.id)
        return job


async def run_generative_job(
    provider: JobProvider,
    input: Mapping[str, Any],
    target: ProgressTarget,
    *,
    transport: Transport,
    config: ProviderConfig,
    model_ref: str | None = None,
    kind: MediaKind | None = None,
    caption: str = "",
    deliver: Deliver = deliver_output,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
) -> Job:
    run = GenerativeJobRun(
        provider,
        transport=transport,
        target=target,
        config=config,
        clock=clock,
        sleep=sleep,
    )
    job = await run.run(input, model_ref=model_ref)
    if kind is not None:
        await deliver(transport, target, kind, job, caption)
    return job


def format_error(error: BaseException) -> str:
    """Single user-facing line for a failed run."""
    match error:
        case ConfigurationError():
            return f"Not configured: {error}"
        case PollTimeoutError():
            return "The job took too long and was abandoned. Try again later."
        case JobFailedError(error=detail):
            return f"The job failed: {detail}" if detail else "The job failed."
        case DeliveryError():
            return f"The job finished but its output could not be sent: {error}"
        case TransportError():
            return f"Provider request failed: {error}"
        case _:
            return str(error) or error.__class__.__name__
