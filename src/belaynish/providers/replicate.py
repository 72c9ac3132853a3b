"""Replicate predictions API adapter."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

import httpx

from ..config import ProviderConfig
from ..errors import TransportError
from ..logging import get_logger
from ..model import Job, JobStatus, ProgressSignals

logger = get_logger(__name__)

_STATUS_MAP: dict[str, JobStatus] = {
    "starting": "pending",
    "processing": "running",
    "succeeded": "succeeded",
    "failed": "failed",
    "canceled": "failed",
}


def _as_fraction(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _log_lines(logs: Any) -> tuple[str, ...]:
    if isinstance(logs, str):
        return tuple(line for line in logs.splitlines() if line.strip())
    if isinstance(logs, list):
        return tuple(item for item in logs if isinstance(item, str))
    return ()


def _normalize_status(raw: Any) -> JobStatus:
    if raw is None:
        return "pending"
    status = _STATUS_MAP.get(str(raw).lower())
    if status is None:
        logger.warning("replicate.unknown_status", status=raw)
        return "running"
    return status


def parse_prediction(payload: Mapping[str, Any]) -> Job:
    metrics = payload.get("metrics")
    metrics_progress = (
        _as_fraction(metrics.get("progress")) if isinstance(metrics, Mapping) else None
    )
    error = payload.get("error")
    return Job(
        id=str(payload.get("id") or ""),
        status=_normalize_status(payload.get("status")),
        output=payload.get("output"),
        progress=ProgressSignals(
            direct=_as_fraction(payload.get("progress")),
            metrics=metrics_progress,
            log_lines=_log_lines(payload.get("logs")),
        ),
        error=str(error) if error else None,
        raw=dict(payload),
    )


class ReplicateProvider:
    name = "replicate"

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._base_url = config.base_url.rstrip("/")

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Token {self._config.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout: float,
    ) -> Mapping[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.request(
                method,
                url,
                json=json,
                headers=self._headers(),
                timeout=timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            raise TransportError(
                f"replicate {method} {path} failed with HTTP "
                f"{exc.response.status_code}: {body}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"replicate {method} {path} timed out after {timeout:.0f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"replicate {method} {path} failed: {exc}") from exc
        try:
            payload = resp.json()
        except ValueError as exc:
            raise TransportError(
                f"replicate {method} {path} returned invalid JSON"
            ) from exc
        if not isinstance(payload, Mapping):
            raise TransportError(
                f"replicate {method} {path} returned {type(payload).__name__}, "
                "expected an object"
            )
        return payload

    async def create_job(self, model_ref: str, input: Mapping[str, Any]) -> Job:
        payload = await self._request(
            "POST",
            "/predictions",
            json={"version": model_ref, "input": dict(input)},
            timeout=self._config.create_timeout_s,
        )
        return parse_prediction(payload)

    async def get_job(self, job_id: str) -> Job:
        payload = await self._request(
            "GET",
            f"/predictions/{job_id}",
            timeout=self._config.create_timeout_s,
        )
        return parse_prediction(payload)
