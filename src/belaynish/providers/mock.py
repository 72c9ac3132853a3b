"""Scripted provider for tests and dry runs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ..model import Job


@dataclass(frozen=True, slots=True)
class Raise:
    error: Exception


ScriptStep = Job | Raise


def _play(step: ScriptStep) -> Job:
    if isinstance(step, Raise):
        raise step.error
    return step


class ScriptProvider:
    """Replays a fixed sequence of status fetches.

    When the script runs out the last step repeats, so a single running job
    models a provider that never finishes.
    """

    name = "mock"

    def __init__(
        self,
        statuses: Iterable[ScriptStep] = (),
        *,
        created: ScriptStep | None = None,
        job_id: str = "job-1",
    ) -> None:
        self._statuses = list(statuses)
        self._created = created if created is not None else Job(id=job_id, status="pending")
        self.create_calls: list[tuple[str, dict[str, Any]]] = []
        self.get_calls: list[str] = []

    async def create_job(self, model_ref: str, input: Mapping[str, Any]) -> Job:
        self.create_calls.append((model_ref, dict(input)))
        return _play(self._created)

    async def get_job(self, job_id: str) -> Job:
        index = min(len(self.get_calls), len(self._statuses) - 1)
        self.get_calls.append(job_id)
        if index < 0:
            raise AssertionError("ScriptProvider has no scripted statuses")
        return _play(self._statuses[index])
