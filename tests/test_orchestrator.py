from __future__ import annotations

from typing import Any

import pytest

from belaynish.config import ProviderConfig
from belaynish.errors import (
    ConfigurationError,
    DeliveryError,
    JobFailedError,
    PollTimeoutError,
    TransportError,
)
from belaynish.model import Job
from belaynish.orchestrator import GenerativeJobRun, format_error, run_generative_job
from belaynish.providers.mock import Raise, ScriptProvider
from belaynish.transport import ProgressTarget

from .fakes import FakeClock, FakeTransport, running

pytestmark = pytest.mark.anyio


def _config(**overrides: Any) -> ProviderConfig:
    values: dict[str, Any] = {
        "name": "mock",
        "api_key": "r8_test",
        "base_url": "https://example.invalid/v1",
        "model_ref": "owner/model:abc",
        "poll_interval_s": 1.0,
        "poll_timeout_s": 10.0,
    }
    values.update(overrides)
    return ProviderConfig(**values)


def _run(provider: ScriptProvider, transport: FakeTransport, **overrides: Any) -> GenerativeJobRun:
    clock = FakeClock()
    return GenerativeJobRun(
        provider,
        transport=transport,
        target=ProgressTarget(channel_id=5),
        config=_config(**overrides),
        clock=clock,
        sleep=clock.sleep,
    )


async def test_completed_run_reports_progress_and_returns_job() -> None:
    done = Job(id="job-1", status="succeeded", output=["https://x/a.png"])
    provider = ScriptProvider([running(direct=0.1), running(direct=0.6), done])
    transport = FakeTransport()
    run = _run(provider, transport)

    job = await run.run({"prompt": "a cat"})

    assert job is done
    assert run.state == "completed"
    assert provider.create_calls == [("owner/model:abc", {"prompt": "a cat"})]
    assert transport.names()[:2] == ["send", "edit_text"]


async def test_explicit_model_ref_overrides_config() -> None:
    provider = ScriptProvider([Job(id="job-1", status="succeeded", output="x")])
    run = _run(provider, FakeTransport())

    await run.run({"prompt": "hi"}, model_ref="other/model:def")

    assert provider.create_calls[0][0] == "other/model:def"


async def test_missing_model_ref_is_configuration_error() -> None:
    provider = ScriptProvider([running()])
    run = _run(provider, FakeTransport(), model_ref=None)

    with pytest.raises(ConfigurationError):
        await run.run({"prompt": "hi"})

    assert run.state == "failed"
    assert provider.create_calls == []


async def test_submission_transport_error_fails_run() -> None:
    provider = ScriptProvider(created=Raise(TransportError("HTTP 502")))
    run = _run(provider, FakeTransport())

    with pytest.raises(TransportError):
        await run.run({"prompt": "hi"})

    assert run.state == "failed"
    assert provider.get_calls == []


async def test_job_without_id_is_transport_error() -> None:
    provider = ScriptProvider(created=Job(id="", status="pending"))
    run = _run(provider, FakeTransport())

    with pytest.raises(TransportError, match="no job id"):
        await run.run({"prompt": "hi"})


async def test_inline_output_skips_polling() -> None:
    inline = Job(id="", status="succeeded", output=["https://x/inline.png"])
    provider = ScriptProvider(created=inline)
    run = _run(provider, FakeTransport())

    job = await run.run({"prompt": "hi"})

    assert job is inline
    assert run.state == "completed"
    assert provider.get_calls == []


async def test_inline_failure_raises_job_failed() -> None:
    provider = ScriptProvider(created=Job(id="job-9", status="failed", error="nsfw"))
    run = _run(provider, FakeTransport())

    with pytest.raises(JobFailedError, match="nsfw"):
        await run.run({"prompt": "hi"})

    assert run.state == "failed"


async def test_provider_failure_marks_failed() -> None:
    provider = ScriptProvider([running(), Job(id="job-1", status="failed", error="bad input")])
    run = _run(provider, FakeTransport())

    with pytest.raises(JobFailedError):
        await run.run({"prompt": "hi"})

    assert run.state == "failed"


async def test_timeout_marks_timed_out() -> None:
    provider = ScriptProvider([running()])
    run = _run(provider, FakeTransport(), poll_interval_s=1.0, poll_timeout_s=3.0)

    with pytest.raises(PollTimeoutError):
        await run.run({"prompt": "hi"})

    assert run.state == "timed_out"
    assert len(provider.get_calls) == 3


async def test_run_generative_job_hands_output_to_delivery() -> None:
    done = Job(id="job-1", status="succeeded", output=["https://x/v.mp4"])
    provider = ScriptProvider([done])
    transport = FakeTransport()
    delivered: list[tuple[str, Job, str]] = []

    async def deliver(_transport, _target, kind, job, caption) -> None:
        delivered.append((kind, job, caption))

    clock = FakeClock()
    job = await run_generative_job(
        provider,
        {"video": "https://x/in.mp4"},
        ProgressTarget(channel_id=5),
        transport=transport,
        config=_config(),
        kind="video",
        caption="clip",
        deliver=deliver,
        clock=clock,
        sleep=clock.sleep,
    )

    assert job is done
    assert delivered == [("video", done, "clip")]


async def test_run_generative_job_without_kind_does_not_deliver() -> None:
    provider = ScriptProvider([Job(id="job-1", status="succeeded", output="x")])
    delivered: list[Job] = []

    async def deliver(*args: Any) -> None:
        delivered.append(args[3])

    clock = FakeClock()
    await run_generative_job(
        provider,
        {"prompt": "hi"},
        ProgressTarget(channel_id=5),
        transport=FakeTransport(),
        config=_config(),
        deliver=deliver,
        clock=clock,
        sleep=clock.sleep,
    )

    assert delivered == []


def test_format_error_messages() -> None:
    assert format_error(ConfigurationError("REPLICATE_API_KEY missing")) == (
        "Not configured: REPLICATE_API_KEY missing"
    )
    assert "too long" in format_error(PollTimeoutError("j", elapsed_s=600, fetches=200))
    assert format_error(JobFailedError("j", error="oom")) == "The job failed: oom"
    assert format_error(JobFailedError("j")) == "The job failed."
    assert format_error(TransportError("HTTP 500")) == "Provider request failed: HTTP 500"
    assert format_error(DeliveryError("j", "could not send video output: too big")) == (
        "The job finished but its output could not be sent: "
        "could not send video output: too big"
    )
    assert format_error(RuntimeError("odd")) == "odd"
