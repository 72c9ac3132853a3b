"""Text rendering for messages sent on behalf of the bot."""

from __future__ import annotations

BOT_NAME = "Belaynish"
UNKNOWN_PERCENT = "processing..."


def with_prefix(text: str) -> str:
    return f"{BOT_NAME}\n\n{text}"


def format_percent(percent: int | None) -> str:
    if percent is None:
        return UNKNOWN_PERCENT
    return f"{percent}%"


def render_progress(percent: int | None) -> str:
    return with_prefix(f"Processing: {format_percent(percent)}")
