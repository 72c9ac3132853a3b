from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

import anyio
import typer

from . import __version__
from .errors import BelaynishError, ConfigurationError, TransportError
from .logging import bind_run_context, clear_context, get_logger, setup_logging
from .modes import MODES, PLACEHOLDER_IMAGE_URL, MediaMode, get_mode, model_settings
from .orchestrator import format_error, run_generative_job
from .providers.replicate import ReplicateProvider
from .render import with_prefix
from .settings import BelaynishSettings, load_settings
from .telegram import BotClient, TelegramTransport
from .transport import MediaKind, ProgressTarget, Transport

logger = get_logger(__name__)

MODE_PLACEHOLDER_TEXT = "Replicate job started, processing..."
DIRECT_PLACEHOLDER_TEXT = "Replicate job started, polling until done..."


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


async def _open_placeholder(
    transport: Transport, chat_id: int, *, media: bool, text: str
) -> ProgressTarget:
    try:
        if media:
            ref = await transport.send_media(
                channel_id=chat_id,
                kind="image",
                media=PLACEHOLDER_IMAGE_URL,
                caption=with_prefix("Processing..."),
            )
            return ProgressTarget(
                channel_id=chat_id, placeholder=ref, placeholder_has_caption=True
            )
        ref = await transport.send(channel_id=chat_id, text=with_prefix(text))
        return ProgressTarget(channel_id=chat_id, placeholder=ref)
    except TransportError as exc:
        logger.info("placeholder.failed", error=str(exc))
        return ProgressTarget(channel_id=chat_id)


async def _run_job(
    settings: BelaynishSettings,
    *,
    chat_id: int,
    model_ref: str,
    input: Mapping[str, Any],
    kind: MediaKind,
    caption: str = "",
    media_placeholder: bool = False,
    placeholder_text: str = MODE_PLACEHOLDER_TEXT,
) -> bool:
    config = settings.replicate_config(model_ref=model_ref)
    transport = TelegramTransport(BotClient(settings.require_telegram_token()))
    provider = ReplicateProvider(config)
    try:
        target = await _open_placeholder(
            transport, chat_id, media=media_placeholder, text=placeholder_text
        )
        try:
            await run_generative_job(
                provider,
                input,
                target,
                transport=transport,
                config=config,
                kind=kind,
                caption=caption,
            )
        except BelaynishError as exc:
            logger.info("run.reported_error", error_type=exc.__class__.__name__)
            await transport.send(channel_id=chat_id, text=with_prefix(format_error(exc)))
            return False
        return True
    finally:
        await provider.close()
        await transport.close()


async def _run_mode(
    settings: BelaynishSettings,
    mode: MediaMode,
    payload: str,
    chat_id: int,
    variant: str | None = None,
) -> bool:
    setting_names = model_settings(mode, variant)
    model_ref = settings.resolve_model(*setting_names)
    if model_ref is None:
        raise ConfigurationError(
            f"Replicate model not set for mode {mode.name!r} "
            f"(`{setting_names[-1].upper()}`)."
        )
    bind_run_context(chat_id=chat_id, mode=mode.name, variant=variant)
    try:
        return await _run_job(
            settings,
            chat_id=chat_id,
            model_ref=model_ref,
            input=mode.build_input(payload),
            kind=mode.kind,
            caption=payload,
            media_placeholder=mode.media_placeholder,
        )
    finally:
        clear_context()


async def _run_model(
    settings: BelaynishSettings, env_var: str, prompt: str, chat_id: int
) -> bool:
    model_ref = settings.resolve_model_env(env_var)
    if model_ref is None:
        raise ConfigurationError(f"No Replicate model found in env as {env_var}.")
    bind_run_context(chat_id=chat_id, mode="replicate", model_env=env_var)
    try:
        return await _run_job(
            settings,
            chat_id=chat_id,
            model_ref=model_ref,
            input={"prompt": prompt},
            kind="text",
            placeholder_text=DIRECT_PLACEHOLDER_TEXT,
        )
    finally:
        clear_context()


def _execute(
    config_path: Path | None, func: Callable[..., Awaitable[bool]], *args: Any
) -> None:
    try:
        settings = load_settings(config_path)
        ok = anyio.run(func, settings, *args)
    except BelaynishError as exc:
        typer.echo(f"error: {format_error(exc)}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")
        raise typer.Exit(code=130)
    if not ok:
        raise typer.Exit(code=1)


def run(
    mode: str = typer.Argument(..., help="Media mode (see `belaynish modes`)."),
    payload: str = typer.Argument(..., help="Prompt or input url for the mode."),
    chat_id: int = typer.Option(..., "--chat-id", help="Telegram chat to report to."),
    variant: str | None = typer.Option(
        None, "--variant", help="Chat model variant: llama2, mistral, gpt5, gpt4, gpt35."
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help="TOML settings file (default: ./belaynish.toml)."
    ),
    debug: bool = typer.Option(
        False, "--debug/--no-debug", help="Log provider polls and Telegram requests."
    ),
) -> None:
    """Run one generative job and report progress to a chat."""
    setup_logging(debug=debug)
    try:
        media_mode = get_mode(mode)
        model_settings(media_mode, variant)
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    _execute(config_path, _run_mode, media_mode, payload, chat_id, variant)


def run_model(
    env_var: str = typer.Argument(
        ..., help="Environment variable holding the Replicate model ref."
    ),
    prompt: str = typer.Argument(..., help="Prompt sent as the model's `prompt` input."),
    chat_id: int = typer.Option(..., "--chat-id", help="Telegram chat to report to."),
    config_path: Path | None = typer.Option(
        None, "--config", help="TOML settings file (default: ./belaynish.toml)."
    ),
    debug: bool = typer.Option(
        False, "--debug/--no-debug", help="Log provider polls and Telegram requests."
    ),
) -> None:
    """Run any Replicate model named by an environment variable; reply with text."""
    setup_logging(debug=debug)
    _execute(config_path, _run_model, env_var, prompt, chat_id)


def modes_cmd() -> None:
    """List available media modes."""
    for name, mode in MODES.items():
        typer.echo(f"{name}\t{mode.kind}\t{mode.description}")


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Run generative provider jobs with progress reported to Telegram.",
)

app.command(name="run")(run)
app.command(name="run-model")(run_model)
app.command(name="modes")(modes_cmd)


@app.callback()
def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Belaynish CLI."""


def main() -> None:
    app()


if __name__ == "__main__":
    main()
