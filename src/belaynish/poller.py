from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import anyio

from .config import DEFAULT_POLL_INTERVAL_S, DEFAULT_POLL_TIMEOUT_S
from .errors import JobFailedError, PollTimeoutError
from .logging import get_logger
from .model import Job
from .provider import JobProvider

logger = get_logger(__name__)

ProgressCallback = Callable[[Job], Awaitable[None]]


async def poll_job(
    provider: JobProvider,
    job_id: str,
    *,
    on_progress: ProgressCallback | None = None,
    interval_s: float = DEFAULT_POLL_INTERVAL_S,
    timeout_s: float = DEFAULT_POLL_TIMEOUT_S,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
) -> Job:
    """Fetch job status every ``interval_s`` until it succeeds or fails.

    The deadline is checked before each fetch, so no fetch starts once
    ``timeout_s`` has elapsed. Errors from ``on_progress`` are logged and
    ignored; fetch errors propagate.
    """
    started_at = clock()
    fetches = 0
    while True:
        elapsed = clock() - started_at
        if elapsed >= timeout_s:
            logger.warning(
                "poll.timeout",
                job_id=job_id,
                elapsed_s=round(elapsed, 3),
                fetches=fetches,
            )
            raise PollTimeoutError(job_id, elapsed_s=elapsed, fetches=fetches)

        job = await provider.get_job(job_id)
        fetches += 1
        logger.debug("poll.fetched", job_id=job_id, status=job.status, fetch=fetches)

        if on_progress is not None:
            try:
                await on_progress(job)
            except Exception as exc:
                logger.warning(
                    "progress.callback_failed",
                    job_id=job_id,
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                )

        if job.status == "succeeded":
            logger.info("poll.succeeded", job_id=job_id, fetches=fetches)
            return job
        if job.status == "failed":
            logger.info("poll.failed", job_id=job_id, error=job.error)
            raise JobFailedError(job_id, error=job.error, payload=job.raw)

        await sleep(interval_s)
