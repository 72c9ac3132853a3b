from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from .config import ProviderConfig
from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("belaynish.toml")
REPLICATE_BASE_URL = "https://api.replicate.com/v1"


class BelaynishSettings(BaseSettings):
    """Flat settings read from init kwargs, the TOML file, the environment and
    ``.env``, in that order of precedence.

    Keys are the same in every source: ``replicate_api_key`` in the file is
    ``REPLICATE_API_KEY`` in the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        toml_file=DEFAULT_CONFIG_PATH,
        extra="ignore",
    )

    telegram_token: str | None = None

    replicate_api_key: str | None = None
    replicate_base_url: str = REPLICATE_BASE_URL
    replicate_poll_interval_ms: int = Field(default=3000, gt=0)
    replicate_poll_timeout_sec: int = Field(default=600, gt=0)
    replicate_create_timeout_sec: int = Field(default=600, gt=0)

    replicate_image_model: str | None = None
    replicate_upscale_model: str | None = None
    replicate_video_caption_model: str | None = None
    replicate_video_captioned_model: str | None = None
    replicate_3d_model: str | None = None
    replicate_tts_model: str | None = None
    replicate_chat_model: str | None = None
    replicate_chat_model_llama2: str | None = None
    replicate_chat_model_mistral: str | None = None
    replicate_chat_model_gpt5: str | None = None
    replicate_chat_model_gpt4: str | None = None
    replicate_chat_model_gpt35: str | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            TomlConfigSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    def resolve_model(self, *field_names: str) -> str | None:
        """First non-blank model ref among ``field_names``."""
        for field_name in field_names:
            value = getattr(self, field_name, None)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def resolve_model_env(self, env_var: str) -> str | None:
        """Model ref stored under an arbitrary environment variable name.

        Known ``*_model*`` settings are looked up through this object so the
        TOML file and ``.env`` apply; anything else is read from the process
        environment.
        """
        name = env_var.strip()
        field_name = name.lower()
        if "_model" in field_name and field_name in type(self).model_fields:
            return self.resolve_model(field_name)
        value = os.environ.get(name, "").strip()
        return value or None

    def replicate_config(self, *, model_ref: str | None = None) -> ProviderConfig:
        if not self.replicate_api_key:
            raise ConfigurationError("REPLICATE_API_KEY missing")
        return ProviderConfig(
            name="replicate",
            api_key=self.replicate_api_key,
            base_url=self.replicate_base_url,
            model_ref=model_ref,
            poll_interval_s=self.replicate_poll_interval_ms / 1000,
            poll_timeout_s=float(self.replicate_poll_timeout_sec),
            create_timeout_s=float(self.replicate_create_timeout_sec),
        )

    def require_telegram_token(self) -> str:
        if not self.telegram_token:
            raise ConfigurationError("TELEGRAM_TOKEN missing")
        return self.telegram_token


def _settings_class(config_path: Path) -> type[BelaynishSettings]:
    if config_path == DEFAULT_CONFIG_PATH:
        return BelaynishSettings

    class FileSettings(BelaynishSettings):
        model_config = SettingsConfigDict(toml_file=config_path)

    return FileSettings


def load_settings(config_path: Path | None = None) -> BelaynishSettings:
    """Build settings, reading ``config_path`` or ``./belaynish.toml``.

    An explicit ``config_path`` must be an existing file; the default path is
    skipped when absent. Values from the file win over the environment.
    """
    if config_path is not None:
        if config_path.exists() and not config_path.is_file():
            raise ConfigurationError(f"Config path {config_path} is not a file.")
        if not config_path.exists():
            raise ConfigurationError(f"Missing config file {config_path}.")
    source = config_path or DEFAULT_CONFIG_PATH
    try:
        return _settings_class(source)()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings ({source}): {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Malformed TOML in {source}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Failed to read config file {source}: {exc}") from exc
