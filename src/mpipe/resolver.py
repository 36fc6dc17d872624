"""
Configuration resolution.

Every field of RequestConfig is resolved on its own by walking an ordered
list of tiers: explicit command input, MP_* environment variable, the named
profile, the provider's default bundle, and finally a hardcoded default.
The first tier that yields a value wins; that value is parsed and validated
immediately and a bad value stops the whole resolution.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar

from .errors import ConfigError
from .models.request import DEFAULT_RETRIES, DEFAULT_RETRY_DELAY_MS, OutputFormat, RequestConfig
from .providers import DEFAULT_PROVIDER, Provider, parse_provider
from .utils.config import (
    ConfigSources,
    EnvSettings,
    ProfileConfig,
    check_max_tokens,
    check_retries,
    check_retry_delay,
    check_temperature,
    check_timeout,
    load_sources,
    parse_output,
    profile_source,
    provider_defaults_source,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplicitInputs:
    """Values given on the command line; None means "not given"."""
    profile: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[int] = None
    retries: Optional[int] = None
    retry_delay: Optional[int] = None
    output: Optional[str] = None
    json: bool = False
    show_usage: bool = False
    system: Optional[str] = None


@dataclass(frozen=True)
class Tier:
    source: str
    fetch: Callable[[], Any]


def resolve_field(
    tiers: Sequence[Tier],
    convert: Callable[[Any, str], Optional[T]],
    default: Optional[T] = None,
) -> Optional[T]:
    """Return the first tier value that converts to something other than None.

    ``convert`` parses and validates a raw value, raising ConfigError on bad
    input; returning None lets a blank value fall through to the next tier.
    """
    for tier in tiers:
        raw = tier.fetch()
        if raw is None:
            continue
        value = convert(raw, tier.source)
        if value is not None:
            return value
    return default


# --- Converters --- #

def _parse_float(raw: Any, source: str, constraint: tuple[str, str]) -> float:
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            raise ConfigError(f"Invalid {constraint[0]} '{raw}' from {source}. {constraint[1]}") from None
    return float(raw)


def _parse_int(raw: Any, source: str, constraint: tuple[str, str]) -> int:
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            raise ConfigError(f"Invalid {constraint[0]} '{raw}' from {source}. {constraint[1]}") from None
    return int(raw)


def convert_provider(raw: Any, source: str) -> Provider:
    if isinstance(raw, Provider):
        return raw
    return parse_provider(raw, source)


def convert_model(raw: Any, source: str) -> Optional[str]:
    trimmed = str(raw).strip()
    return trimmed or None


def convert_temperature(raw: Any, source: str) -> float:
    value = _parse_float(raw, source, ("temperature", "Must be a float in [0.0, 2.0]."))
    return check_temperature(value, source)


def convert_max_tokens(raw: Any, source: str) -> int:
    return check_max_tokens(_parse_int(raw, source, ("max tokens", "Must be an integer > 0.")), source)


def convert_timeout(raw: Any, source: str) -> int:
    return check_timeout(_parse_int(raw, source, ("timeout", "Must be an integer > 0.")), source)


def convert_retries(raw: Any, source: str) -> int:
    return check_retries(_parse_int(raw, source, ("retries", "Must be an integer >= 0.")), source)


def convert_retry_delay(raw: Any, source: str) -> int:
    return check_retry_delay(_parse_int(raw, source, ("retry delay", "Must be an integer > 0.")), source)


def convert_output(raw: Any, source: str) -> OutputFormat:
    if isinstance(raw, OutputFormat):
        return raw
    return parse_output(raw, source)


def passthrough(raw: T, source: str) -> T:
    return raw


class ConfigResolver:
    """Merge explicit input, environment, profile, and provider defaults."""

    def __init__(self, explicit: ExplicitInputs, env: EnvSettings, sources: ConfigSources):
        self.explicit = explicit
        self.env = env
        self.sources = sources

    def _profile_tier(self, field: str) -> Tier:
        name = self.sources.profile_name or "none"
        source = profile_source(name, self.sources.path) if self.sources.path else f"profile '{name}'"
        return Tier(source, lambda: getattr(self.sources.profile, field))

    def _defaults_tier(self, field: str, provider: Provider) -> Tier:
        bundle: ProfileConfig = self.sources.defaults_for(provider)
        source = (
            provider_defaults_source(provider.value, self.sources.path)
            if self.sources.path else f"providers.{provider.value}.defaults"
        )
        return Tier(source, lambda: getattr(bundle, field))

    def _tiers(self, field: str, flag: str, env_name: Optional[str], provider: Provider) -> list[Tier]:
        tiers = [Tier(flag, lambda: getattr(self.explicit, field))]
        if env_name is not None:
            tiers.append(Tier(f"MP_{env_name}", lambda: getattr(self.env, env_name)))
        tiers.append(self._profile_tier(field))
        tiers.append(self._defaults_tier(field, provider))
        return tiers

    def resolve_provider(self) -> Provider:
        tiers = [
            Tier("--provider", lambda: self.explicit.provider),
            Tier("MP_PROVIDER", lambda: self.env.PROVIDER),
            self._profile_tier("provider"),
        ]
        return resolve_field(tiers, convert_provider, DEFAULT_PROVIDER)

    def resolve_output(self, provider: Provider) -> OutputFormat:
        tiers = [
            Tier("--json", lambda: OutputFormat.JSON if self.explicit.json else None),
            Tier("--output", lambda: self.explicit.output),
            self._profile_tier("output"),
            self._defaults_tier("output", provider),
        ]
        return resolve_field(tiers, convert_output, OutputFormat.TEXT)

    def resolve_show_usage(self, provider: Provider) -> bool:
        tiers = [
            Tier("--show-usage", lambda: True if self.explicit.show_usage else None),
            self._profile_tier("show_usage"),
            self._defaults_tier("show_usage", provider),
        ]
        return resolve_field(tiers, passthrough, False)

    def resolve(self) -> RequestConfig:
        provider = self.resolve_provider()

        model = resolve_field(self._tiers("model", "--model", "MODEL", provider), convert_model)
        if model is None:
            raise ConfigError("No model provided. Use --model or set MP_MODEL.")

        config = RequestConfig(
            provider=provider,
            model=model,
            temperature=resolve_field(
                self._tiers("temperature", "--temperature", "TEMPERATURE", provider),
                convert_temperature,
            ),
            max_tokens=resolve_field(
                self._tiers("max_tokens", "--max-tokens", "MAX_TOKENS", provider),
                convert_max_tokens,
            ),
            timeout=resolve_field(
                self._tiers("timeout", "--timeout", "TIMEOUT", provider),
                convert_timeout,
            ),
            retries=resolve_field(
                self._tiers("retries", "--retries", "RETRIES", provider),
                convert_retries,
                DEFAULT_RETRIES,
            ),
            retry_delay=resolve_field(
                self._tiers("retry_delay", "--retry-delay", "RETRY_DELAY", provider),
                convert_retry_delay,
                DEFAULT_RETRY_DELAY_MS,
            ),
            output=self.resolve_output(provider),
            show_usage=self.resolve_show_usage(provider),
            system=resolve_field(self._tiers("system", "--system", None, provider), passthrough),
        )
        logger.debug(f"Resolved request config: {config}")
        return config


def resolve_config(explicit: ExplicitInputs) -> RequestConfig:
    """Load the file tiers and resolve one RequestConfig from all tiers."""
    env = EnvSettings()
    sources = load_sources(explicit.profile, env)
    return ConfigResolver(explicit, env, sources).resolve()
