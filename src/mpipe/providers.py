"""Static provider registry: endpoint and credential variable per backend."""

import os
from dataclasses import dataclass
from enum import Enum

from .errors import ConfigError


class Provider(str, Enum):
    OPENAI = "openai"
    FIREWORKS = "fireworks"


@dataclass(frozen=True)
class ProviderSpec:
    endpoint: str
    api_key_env: str


PROVIDER_SPECS: dict[Provider, ProviderSpec] = {
    Provider.OPENAI: ProviderSpec(
        endpoint="https://api.openai.com/v1/chat/completions",
        api_key_env="OPENAI_API_KEY",
    ),
    Provider.FIREWORKS: ProviderSpec(
        endpoint="https://api.fireworks.ai/inference/v1/chat/completions",
        api_key_env="FIREWORKS_API_KEY",
    ),
}

DEFAULT_PROVIDER = Provider.OPENAI


def supported_values() -> str:
    return ", ".join(provider.value for provider in Provider)


def endpoint(provider: Provider) -> str:
    return PROVIDER_SPECS[provider].endpoint


def api_key_env(provider: Provider) -> str:
    return PROVIDER_SPECS[provider].api_key_env


def is_api_key_present(provider: Provider) -> bool:
    """Presence check only; the value itself never leaves this function."""
    return bool(os.environ.get(api_key_env(provider), "").strip())


def normalize_provider_name(raw: str) -> str:
    return raw.strip().lower()


def parse_provider(raw: str, source: str) -> Provider:
    """Parse a provider name case-insensitively.

    Args:
        raw: The value as written by the user.
        source: Where the value came from, used in the error message
            (e.g. ``MP_PROVIDER`` or ``profile 'fw'``).

    Raises:
        ConfigError: If the name is not a known provider.
    """
    name = normalize_provider_name(raw)
    try:
        return Provider(name)
    except ValueError:
        raise ConfigError(
            f"Invalid provider '{name}' from {source}. Supported values: {supported_values()}."
        ) from None
