from __future__ import annotations

from typing import Any

from ..errors import TransportError
from ..transport import ChannelId, MediaKind, MessageRef
from .client import BotClient

# sendX method, file field, InputMedia type (None: cannot replace an existing message)
_MEDIA_METHODS: dict[str, tuple[str, str, str | None]] = {
    "image": ("sendPhoto", "photo", "photo"),
    "video": ("sendVideo", "video", "video"),
    "audio": ("sendAudio", "audio", "audio"),
    "voice": ("sendVoice", "voice", None),
    "document": ("sendDocument", "document", "document"),
}


def _message_ref(channel_id: ChannelId, sent: Any) -> MessageRef:
    if not isinstance(sent, dict) or not isinstance(sent.get("message_id"), int):
        raise TransportError(f"Telegram returned no message id: {sent!r}")
    return MessageRef(channel_id=channel_id, message_id=sent["message_id"], raw=sent)


def _media_method(kind: MediaKind) -> tuple[str, str, str | None]:
    entry = _MEDIA_METHODS.get(kind)
    if entry is None:
        raise TransportError(f"Unsupported media kind {kind!r}")
    return entry


class TelegramTransport:
    def __init__(self, bot: BotClient) -> None:
        self._bot = bot

    async def close(self) -> None:
        await self._bot.close()

    async def send(self, *, channel_id: ChannelId, text: str) -> MessageRef:
        sent = await self._bot.send_message(chat_id=channel_id, text=text)
        return _message_ref(channel_id, sent)

    async def edit_text(self, *, ref: MessageRef, text: str) -> None:
        await self._bot.edit_message_text(
            chat_id=ref.channel_id, message_id=ref.message_id, text=text
        )

    async def edit_caption(self, *, ref: MessageRef, text: str) -> None:
        await self._bot.edit_message_caption(
            chat_id=ref.channel_id, message_id=ref.message_id, caption=text
        )

    async def edit_media(self, *, ref: MessageRef, kind: MediaKind, media: str) -> None:
        _, _, media_type = _media_method(kind)
        if media_type is None:
            raise TransportError(f"Media kind {kind!r} cannot replace a message")
        await self._bot.edit_message_media(
            chat_id=ref.channel_id,
            message_id=ref.message_id,
            media={"type": media_type, "media": media},
        )

    async def send_media(
        self,
        *,
        channel_id: ChannelId,
        kind: MediaKind,
        media: str,
        caption: str | None = None,
    ) -> MessageRef:
        method, field, _ = _media_method(kind)
        sent = await self._bot.send_file(
            method, field=field, chat_id=channel_id, media=media, caption=caption
        )
        return _message_ref(channel_id, sent)
