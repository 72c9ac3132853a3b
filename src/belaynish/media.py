from __future__ import annotations

from typing import Any

from .errors import DeliveryError, TransportError
from .logging import get_logger
from .model import Job
from .render import with_prefix
from .transport import ChannelId, MediaKind, MessageRef, ProgressTarget, Transport

logger = get_logger(__name__)

NO_OUTPUT_TEXT = "finished but produced no output."
VOICE_INTRO_TEXT = "Sending voice..."


def first_output(output: Any) -> Any:
    if isinstance(output, list | tuple):
        return output[0] if output else None
    return output


async def _replace_placeholder(
    transport: Transport, *, ref: MessageRef, kind: MediaKind, media: str, caption: str
) -> bool:
    try:
        await transport.edit_media(ref=ref, kind=kind, media=media)
        await transport.edit_caption(ref=ref, text=with_prefix(caption))
    except TransportError as exc:
        logger.info(
            "media.placeholder_edit_failed",
            message_id=ref.message_id,
            error=str(exc),
        )
        return False
    return True


async def _send_captioned(
    transport: Transport,
    *,
    channel_id: ChannelId,
    kind: MediaKind,
    media: str,
    caption: str,
    job_id: str,
) -> None:
    try:
        await transport.send_media(
            channel_id=channel_id, kind=kind, media=media, caption=with_prefix(caption)
        )
        return
    except TransportError as exc:
        logger.info(
            "media.captioned_send_failed", kind=kind, job_id=job_id, error=str(exc)
        )
    # caption as its own message, then the bare media
    await transport.send(channel_id=channel_id, text=with_prefix(caption))
    await transport.send_media(channel_id=channel_id, kind=kind, media=media)


async def _send_voice(
    transport: Transport, *, channel_id: ChannelId, media: str, caption: str
) -> None:
    await transport.send(
        channel_id=channel_id, text=with_prefix(caption or VOICE_INTRO_TEXT)
    )
    await transport.send_media(channel_id=channel_id, kind="voice", media=media)


async def deliver_output(
    transport: Transport,
    target: ProgressTarget,
    kind: MediaKind,
    job: Job,
    caption: str = "",
) -> None:
    """Send a finished job's output to the chat as ``kind``.

    An image job started with a media placeholder swaps the placeholder's
    media in place. Voice goes out after a prefixed text message, since voice
    notes carry no caption. Other media is sent with a prefixed caption; when
    Telegram rejects that (an over-long caption, say) the caption is sent as
    text and the media follows without one.

    Raises :class:`DeliveryError` when the output cannot be sent at all.
    """
    channel_id = target.channel_id
    try:
        out = first_output(job.output)
        if out is None or out == "":
            await transport.send(channel_id=channel_id, text=with_prefix(NO_OUTPUT_TEXT))
            return
        if kind == "text":
            await transport.send(channel_id=channel_id, text=with_prefix(str(out)))
            return

        media = str(out)
        if kind == "voice":
            await _send_voice(
                transport, channel_id=channel_id, media=media, caption=caption
            )
            return
        placeholder = target.caption_placeholder
        if kind == "image" and placeholder is not None:
            replaced = await _replace_placeholder(
                transport, ref=placeholder, kind=kind, media=media, caption=caption
            )
            if replaced:
                return
        logger.debug("media.send", kind=kind, job_id=job.id)
        await _send_captioned(
            transport,
            channel_id=channel_id,
            kind=kind,
            media=media,
            caption=caption,
            job_id=job.id,
        )
    except TransportError as exc:
        raise DeliveryError(job.id, f"could not send {kind} output: {exc}") from exc
