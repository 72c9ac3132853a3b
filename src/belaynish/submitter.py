from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .config import ProviderConfig
from .errors import ConfigurationError, TransportError
from .logging import get_logger
from .model import Job
from .provider import JobProvider

logger = get_logger(__name__)


async def submit_job(
    provider: JobProvider,
    input: Mapping[str, Any],
    *,
    config: ProviderConfig,
    model_ref: str | None = None,
) -> Job:
    """Create a job and return it as first reported by the provider.

    Normally the job is pending with a provider id. Providers that answer
    synchronously may return a terminal job with inline output instead.
    """
    ref = (model_ref or config.model_ref or "").strip()
    if not ref:
        raise ConfigurationError(f"No model configured for provider {config.name!r}.")

    logger.debug("job.submit", provider=provider.name, model_ref=ref)
    job = await provider.create_job(ref, input)
    if not job.id and not job.terminal:
        raise TransportError(
            f"{provider.name} accepted the job but returned no job id"
        )
    logger.info(
        "job.submitted",
        provider=provider.name,
        model_ref=ref,
        job_id=job.id or None,
        status=job.status,
    )
    return job
