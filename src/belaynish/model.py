"""Normalized job types shared by providers, the poller and the reporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

JobStatus = Literal["pending", "running", "succeeded", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "failed"})


@dataclass(frozen=True, slots=True)
class ProgressSignals:
    """Progress hints a provider adapter could find in a status payload.

    ``direct`` and ``metrics`` are fractions in [0, 1]; ``log_lines`` keeps the
    provider log in order, newest last.
    """

    direct: float | None = None
    metrics: float | None = None
    log_lines: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Job:
    id: str
    status: JobStatus
    output: Any = None
    progress: ProgressSignals = field(default_factory=ProgressSignals)
    error: str | None = None
    raw: Any = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
