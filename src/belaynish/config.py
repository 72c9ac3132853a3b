from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_POLL_INTERVAL_S = 3.0
DEFAULT_POLL_TIMEOUT_S = 600.0
DEFAULT_CREATE_TIMEOUT_S = 600.0


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Everything the submitter and poller need to talk to one provider.

    Validated on construction so a missing key fails before any request is
    made.
    """

    name: str
    api_key: str
    base_url: str
    model_ref: str | None = None
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    poll_timeout_s: float = DEFAULT_POLL_TIMEOUT_S
    create_timeout_s: float = DEFAULT_CREATE_TIMEOUT_S

    def __post_init__(self) -> None:
        if not isinstance(self.api_key, str) or not self.api_key.strip():
            raise ConfigurationError(f"Missing api key for provider {self.name!r}.")
        if not self.base_url:
            raise ConfigurationError(f"Missing base url for provider {self.name!r}.")
        for label, value in (
            ("poll_interval_s", self.poll_interval_s),
            ("poll_timeout_s", self.poll_timeout_s),
            ("create_timeout_s", self.create_timeout_s),
        ):
            if value <= 0:
                raise ConfigurationError(
                    f"Invalid `{label}` for provider {self.name!r}; expected a positive number."
                )
        if self.model_ref is not None and not self.model_ref.strip():
            raise ConfigurationError(
                f"Invalid `model_ref` for provider {self.name!r}; expected a non-empty string."
            )
