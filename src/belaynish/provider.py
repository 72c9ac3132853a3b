from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from .model import Job


class JobProvider(Protocol):
    """A generative backend that runs jobs asynchronously.

    Implementations return normalized :class:`Job` values and raise
    :class:`~belaynish.errors.TransportError` when a request cannot be
    completed.
    """

    name: str

    async def create_job(self, model_ref: str, input: Mapping[str, Any]) -> Job: ...

    async def get_job(self, job_id: str) -> Job: ...
