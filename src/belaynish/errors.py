from __future__ import annotations

from typing import Any


class BelaynishError(Exception):
    """Base class for errors surfaced by the job engine."""


class ConfigurationError(BelaynishError):
    pass


class TransportError(BelaynishError):
    pass


class JobFailedError(BelaynishError):
    def __init__(
        self,
        job_id: str,
        *,
        error: str | None = None,
        payload: Any = None,
    ) -> None:
        self.job_id = job_id
        self.error = error
        self.payload = payload
        detail = error or "no error reported"
        super().__init__(f"job {job_id or '<inline>'} failed: {detail}")


class PollTimeoutError(BelaynishError):
    def __init__(self, job_id: str, *, elapsed_s: float, fetches: int) -> None:
        self.job_id = job_id
        self.elapsed_s = elapsed_s
        self.fetches = fetches
        super().__init__(
            f"job {job_id} timed out after {elapsed_s:.1f}s ({fetches} status checks)"
        )


class DeliveryError(BelaynishError):
    """A finished job's output could not be sent to the chat."""

    def __init__(self, job_id: str, message: str) -> None:
        self.job_id = job_id
        super().__init__(message)
