from __future__ import annotations

from typing import Any

import httpx

from ..errors import ConfigurationError, TransportError
from ..logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class BotClient:
    """Minimal async Telegram Bot API client."""

    def __init__(
        self,
        token: str,
        *,
        timeout_s: float = 120.0,
        client: httpx.AsyncClient | None = None,
        base_url: str = TELEGRAM_API_URL,
    ) -> None:
        if not token:
            raise ConfigurationError("Telegram token is empty")
        self._base = f"{base_url.rstrip('/')}/bot{token}"
        self._timeout_s = timeout_s
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: dict[str, Any]) -> Any:
        logger.debug("telegram.request", method=method)
        try:
            resp = await self._client.post(
                f"{self._base}/{method}",
                json=params,
                timeout=self._timeout_s,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Telegram {method} failed: {exc}") from exc
        try:
            payload = resp.json()
        except ValueError as exc:
            raise TransportError(
                f"Telegram {method} returned HTTP {resp.status_code} with a non-JSON body"
            ) from exc
        if not isinstance(payload, dict) or not payload.get("ok"):
            description = (
                payload.get("description") if isinstance(payload, dict) else None
            )
            raise TransportError(
                f"Telegram {method} error {resp.status_code}: {description or payload}"
            )
        return payload["result"]

    async def send_message(self, *, chat_id: int | str, text: str) -> dict[str, Any]:
        return await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def edit_message_text(
        self, *, chat_id: int | str, message_id: int, text: str
    ) -> Any:
        return await self._call(
            "editMessageText",
            {"chat_id": chat_id, "message_id": message_id, "text": text},
        )

    async def edit_message_caption(
        self, *, chat_id: int | str, message_id: int, caption: str
    ) -> Any:
        return await self._call(
            "editMessageCaption",
            {"chat_id": chat_id, "message_id": message_id, "caption": caption},
        )

    async def edit_message_media(
        self,
        *,
        chat_id: int | str,
        message_id: int,
        media: dict[str, Any],
    ) -> Any:
        return await self._call(
            "editMessageMedia",
            {"chat_id": chat_id, "message_id": message_id, "media": media},
        )

    async def send_file(
        self,
        method: str,
        *,
        field: str,
        chat_id: int | str,
        media: str,
        caption: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"chat_id": chat_id, field: media}
        if caption:
            params["caption"] = caption
        return await self._call(method, params)
