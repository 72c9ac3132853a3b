"""Progress extraction and throttled progress messages for running jobs."""

from __future__ import annotations

import math
import re
import time
from collections.abc import Callable
from typing import Literal

from .errors import TransportError
from .logging import get_logger
from .model import Job
from .render import render_progress
from .transport import MessageRef, ProgressTarget, Transport

logger = get_logger(__name__)

MIN_PERCENT_DELTA = 5
MIN_INTERVAL_S = 15.0

_PERCENT_RE = re.compile(r"(\d{1,3})\s?%")
# leading number only, so "0.75." and "1.2.3" read as 0.75 and 1.2
_PROGRESS_TOKEN_RE = re.compile(
    r"progress[:=]\s*(\d+(?:\.\d+)?|\.\d+)", re.IGNORECASE
)


def _clamp(percent: int) -> int:
    return min(100, max(0, percent))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def fraction_to_percent(fraction: float) -> int:
    return _clamp(_round_half_up(fraction * 100))


def percent_from_log_line(line: str) -> int | None:
    match = _PERCENT_RE.search(line)
    if match:
        return _clamp(int(match.group(1)))
    match = _PROGRESS_TOKEN_RE.search(line)
    if match is None:
        return None
    value = float(match.group(1))
    if value <= 1:
        value *= 100
    return _clamp(_round_half_up(value))


def extract_percent(job: Job) -> int | None:
    """Percent complete for ``job``, or ``None`` when the provider gave no hint.

    Signals are tried in order: the job's own fraction, the metrics fraction,
    then the newest log line.
    """
    signals = job.progress
    if signals.direct is not None:
        return fraction_to_percent(signals.direct)
    if signals.metrics is not None:
        return fraction_to_percent(signals.metrics)
    if signals.log_lines:
        return percent_from_log_line(signals.log_lines[-1])
    return None


class UpdateThrottle:
    __slots__ = ("min_delta", "min_interval_s", "last_percent", "last_emitted_at")

    def __init__(
        self,
        *,
        min_delta: int = MIN_PERCENT_DELTA,
        min_interval_s: float = MIN_INTERVAL_S,
    ) -> None:
        self.min_delta = min_delta
        self.min_interval_s = min_interval_s
        self.last_percent = -1
        self.last_emitted_at: float | None = None

    def should_emit(self, percent: int | None, now: float) -> bool:
        if percent is not None and percent - self.last_percent >= self.min_delta:
            return True
        if self.last_emitted_at is None:
            return True
        return now - self.last_emitted_at >= self.min_interval_s

    def record(self, percent: int | None, now: float) -> None:
        self.last_emitted_at = now
        if percent is not None:
            self.last_percent = percent


class ProgressReporter:
    """Renders poll ticks of one job into a chat, at most as often as the
    throttle allows.

    With a media placeholder the caption of that placeholder is edited;
    otherwise a single text message is sent once and edited afterwards.
    Delivery is best effort: failures are logged and never raised.
    """

    def __init__(
        self,
        transport: Transport,
        target: ProgressTarget,
        *,
        throttle: UpdateThrottle | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._target = target
        self._throttle = throttle or UpdateThrottle()
        self._clock = clock
        self._caption_ref = target.caption_placeholder
        self.active_ref: MessageRef | None = (
            None if self._caption_ref is not None else target.placeholder
        )

    @property
    def mode(self) -> Literal["caption", "text"]:
        return "caption" if self._caption_ref is not None else "text"

    @property
    def throttle(self) -> UpdateThrottle:
        return self._throttle

    async def __call__(self, job: Job) -> None:
        percent = extract_percent(job)
        now = self._clock()
        if not self._throttle.should_emit(percent, now):
            return
        self._throttle.record(percent, now)
        text = render_progress(percent)
        try:
            if self._caption_ref is not None:
                await self._emit_caption(self._caption_ref, text)
            else:
                await self._emit_text(text)
        except Exception as exc:
            logger.warning(
                "progress.emit_failed",
                job_id=job.id,
                percent=percent,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )

    async def _emit_caption(self, ref: MessageRef, text: str) -> None:
        try:
            await self._transport.edit_caption(ref=ref, text=text)
            return
        except TransportError as exc:
            logger.debug(
                "progress.edit_caption_failed",
                message_id=ref.message_id,
                error=str(exc),
            )
        await self._transport.send(channel_id=self._target.channel_id, text=text)

    async def _emit_text(self, text: str) -> None:
        if self.active_ref is None:
            self.active_ref = await self._transport.send(
                channel_id=self._target.channel_id, text=text
            )
            return
        try:
            await self._transport.edit_text(ref=self.active_ref, text=text)
        except TransportError as exc:
            logger.debug(
                "progress.edit_text_failed",
                message_id=self.active_ref.message_id,
                error=str(exc),
            )
            self.active_ref = await self._transport.send(
                channel_id=self._target.channel_id, text=text
            )
