from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .transport import MediaKind

PLACEHOLDER_IMAGE_URL = "https://placehold.co/512x512?text=Processing"


@dataclass(frozen=True, slots=True)
class MediaMode:
    name: str
    model_setting: str
    input_key: str
    kind: MediaKind
    media_placeholder: bool = False
    description: str = ""

    def build_input(self, payload: str) -> dict[str, Any]:
        return {self.input_key: payload}


MODES: dict[str, MediaMode] = {
    mode.name: mode
    for mode in (
        MediaMode(
            name="flux",
            model_setting="replicate_image_model",
            input_key="prompt",
            kind="image",
            media_placeholder=True,
            description="text to image",
        ),
        MediaMode(
            name="fixface",
            model_setting="replicate_upscale_model",
            input_key="image",
            kind="image",
            media_placeholder=True,
            description="face restore / upscale an image url",
        ),
        MediaMode(
            name="caption",
            model_setting="replicate_video_caption_model",
            input_key="video",
            kind="text",
            description="caption a video url",
        ),
        MediaMode(
            name="burncaption",
            model_setting="replicate_video_captioned_model",
            input_key="video",
            kind="video",
            description="burn captions into a video url",
        ),
        MediaMode(
            name="recon3d",
            model_setting="replicate_3d_model",
            input_key="video",
            kind="document",
            description="3d reconstruction from a video url",
        ),
        MediaMode(
            name="tts",
            model_setting="replicate_tts_model",
            input_key="text",
            kind="voice",
            description="text to speech",
        ),
        MediaMode(
            name="chat",
            model_setting="replicate_chat_model",
            input_key="prompt",
            kind="text",
            description="text generation",
        ),
    )
}


def get_mode(name: str) -> MediaMode:
    key = name.strip().lower()
    mode = MODES.get(key)
    if mode is None:
        available = ", ".join(sorted(MODES))
        raise ValueError(f"Unknown mode {name!r}. Available: {available}.")
    return mode


CHAT_VARIANTS: dict[str, str] = {
    "llama2": "replicate_chat_model_llama2",
    "mistral": "replicate_chat_model_mistral",
    "gpt5": "replicate_chat_model_gpt5",
    "gpt4": "replicate_chat_model_gpt4",
    "gpt35": "replicate_chat_model_gpt35",
}
DEFAULT_CHAT_VARIANT = "gpt5"


def model_settings(mode: MediaMode, variant: str | None = None) -> tuple[str, ...]:
    """Settings to try, in order, for the model that runs ``mode``.

    Only ``chat`` has variants. Without one it uses the generic chat model and
    then the default variant.
    """
    if mode.name != "chat":
        if variant is not None:
            raise ValueError(f"Mode {mode.name!r} has no model variants.")
        return (mode.model_setting,)
    if variant is None:
        return (mode.model_setting, CHAT_VARIANTS[DEFAULT_CHAT_VARIANT])
    setting = CHAT_VARIANTS.get(variant.strip().lower())
    if setting is None:
        available = ", ".join(CHAT_VARIANTS)
        raise ValueError(f"Unknown chat variant {variant!r}. Available: {available}.")
    return (setting,)
