from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

MediaKind = Literal["image", "video", "audio", "voice", "document", "text"]

ChannelId = int | str


@dataclass(frozen=True, slots=True)
class MessageRef:
    channel_id: ChannelId
    message_id: int
    raw: Any = None


@dataclass(frozen=True, slots=True)
class ProgressTarget:
    """Where progress for one job is rendered.

    ``placeholder`` is an already sent message to reuse as the edit target;
    ``placeholder_has_caption`` marks it as media whose caption is edited
    instead of its text.
    """

    channel_id: ChannelId
    placeholder: MessageRef | None = None
    placeholder_has_caption: bool = False

    @property
    def caption_placeholder(self) -> MessageRef | None:
        if self.placeholder is not None and self.placeholder_has_caption:
            return self.placeholder
        return None


class Transport(Protocol):
    async def send(self, *, channel_id: ChannelId, text: str) -> MessageRef: ...

    async def edit_text(self, *, ref: MessageRef, text: str) -> None: ...

    async def edit_caption(self, *, ref: MessageRef, text: str) -> None: ...

    async def edit_media(
        self, *, ref: MessageRef, kind: MediaKind, media: str
    ) -> None: ...

    async def send_media(
        self,
        *,
        channel_id: ChannelId,
        kind: MediaKind,
        media: str,
        caption: str | None = None,
    ) -> MessageRef: ...
