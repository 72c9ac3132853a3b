from __future__ import annotations

from pathlib import Path

import pytest

from belaynish.config import ProviderConfig
from belaynish.errors import ConfigurationError
from belaynish.settings import load_settings

_ENV_KEYS = (
    "TELEGRAM_TOKEN",
    "REPLICATE_API_KEY",
    "REPLICATE_POLL_INTERVAL_MS",
    "REPLICATE_POLL_TIMEOUT_SEC",
    "REPLICATE_IMAGE_MODEL",
    "REPLICATE_CHAT_MODEL",
    "REPLICATE_CHAT_MODEL_GPT5",
    "MY_FINETUNE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_env_builds_replicate_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLICATE_API_KEY", "r8_env")
    monkeypatch.setenv("REPLICATE_POLL_INTERVAL_MS", "1500")
    monkeypatch.setenv("REPLICATE_POLL_TIMEOUT_SEC", "120")
    monkeypatch.setenv("REPLICATE_IMAGE_MODEL", "owner/flux:abc")

    settings = load_settings()
    config = settings.replicate_config(
        model_ref=settings.resolve_model("replicate_image_model")
    )

    assert config.api_key == "r8_env"
    assert config.poll_interval_s == 1.5
    assert config.poll_timeout_s == 120.0
    assert config.model_ref == "owner/flux:abc"


def test_defaults_match_polling_cadence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLICATE_API_KEY", "r8_env")
    config = load_settings().replicate_config()

    assert config.poll_interval_s == 3.0
    assert config.poll_timeout_s == 600.0
    assert config.create_timeout_s == 600.0


def test_missing_api_key_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="REPLICATE_API_KEY"):
        load_settings().replicate_config()


def test_missing_telegram_token() -> None:
    with pytest.raises(ConfigurationError, match="TELEGRAM_TOKEN"):
        load_settings().require_telegram_token()


def test_toml_file_overrides_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("REPLICATE_API_KEY", "r8_env")
    config_path = tmp_path / "custom.toml"
    config_path.write_text('replicate_api_key = "r8_file"\n', encoding="utf-8")

    settings = load_settings(config_path)

    assert settings.replicate_api_key == "r8_file"


def test_default_toml_file_is_read_when_present(tmp_path: Path) -> None:
    (tmp_path / "belaynish.toml").write_text(
        'telegram_token = "1:abc"\n', encoding="utf-8"
    )
    assert load_settings().require_telegram_token() == "1:abc"


def test_invalid_values_are_configuration_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.toml"
    config_path.write_text("replicate_poll_interval_ms = 0\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid settings"):
        load_settings(config_path)


def test_missing_explicit_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Missing config file"):
        load_settings(tmp_path / "missing.toml")


def test_config_path_must_be_a_file(tmp_path: Path) -> None:
    config_dir = tmp_path / "conf"
    config_dir.mkdir()
    with pytest.raises(ConfigurationError, match="is not a file"):
        load_settings(config_dir)


def test_malformed_default_toml_names_the_file(tmp_path: Path) -> None:
    (tmp_path / "belaynish.toml").write_text("replicate_api_key = [", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Malformed TOML in belaynish.toml"):
        load_settings()


def test_missing_default_toml_is_fine(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLICATE_API_KEY", "r8_env")
    assert load_settings().replicate_api_key == "r8_env"


def test_first_configured_model_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLICATE_CHAT_MODEL_GPT5", "openai/gpt-5")
    settings = load_settings()

    assert settings.resolve_model("replicate_chat_model", "replicate_chat_model_gpt5") == (
        "openai/gpt-5"
    )


def test_model_env_reads_settings_and_process_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    (tmp_path / "belaynish.toml").write_text(
        'replicate_chat_model = "meta/llama"\n', encoding="utf-8"
    )
    monkeypatch.setenv("MY_FINETUNE", " me/tuned:v1 ")
    settings = load_settings()

    assert settings.resolve_model_env("REPLICATE_CHAT_MODEL") == "meta/llama"
    assert settings.resolve_model_env("MY_FINETUNE") == "me/tuned:v1"
    assert settings.resolve_model_env("NOT_SET_ANYWHERE") is None


def test_blank_model_ref_is_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLICATE_IMAGE_MODEL", "   ")
    assert load_settings().resolve_model("replicate_image_model") is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"api_key": ""},
        {"base_url": ""},
        {"poll_interval_s": 0},
        {"poll_timeout_s": -1},
        {"model_ref": " "},
    ],
)
def test_provider_config_validation(overrides: dict) -> None:
    values = {"name": "replicate", "api_key": "k", "base_url": "https://x"}
    values.update(overrides)
    with pytest.raises(ConfigurationError):
        ProviderConfig(**values)
