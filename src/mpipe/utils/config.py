import logging
import math
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigError
from ..models.request import OutputFormat
from ..providers import Provider, normalize_provider_name, parse_provider, supported_values

CONFIG_DIR_NAME = "mpipe"
CONFIG_FILE_NAME = "config.toml"

logger = logging.getLogger(__name__)


class EnvSettings(BaseSettings):
    """Raw MP_* environment values.

    Values are kept as strings so that parse failures can be reported with the
    variable name and the offending text.
    """
    PROVIDER: Optional[str] = None
    MODEL: Optional[str] = None
    TEMPERATURE: Optional[str] = None
    MAX_TOKENS: Optional[str] = None
    TIMEOUT: Optional[str] = None
    RETRIES: Optional[str] = None
    RETRY_DELAY: Optional[str] = None
    CONFIG: Optional[str] = None
    # Build metadata stamped by packaging, shown by --version
    GIT_SHA: Optional[str] = None
    BUILD_TS: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="MP_",
        case_sensitive=True,
        extra='ignore'
    )


class ProfileConfig(BaseModel):
    """One bundle of request defaults: a named profile or a provider's defaults."""
    provider: Optional[str] = None
    model: Optional[str] = None
    system: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[int] = None
    retries: Optional[int] = None
    retry_delay: Optional[int] = None
    output: Optional[str] = None
    show_usage: Optional[bool] = None

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)


class ProviderSection(BaseModel):
    defaults: ProfileConfig = ProfileConfig()

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)


@dataclass(frozen=True)
class ConfigFile:
    path: Path
    profiles: Optional[Dict[str, ProfileConfig]] = None
    provider_defaults: Dict[Provider, ProfileConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class ConfigSources:
    """File-backed tiers for one invocation."""
    profile: ProfileConfig = ProfileConfig()
    profile_name: Optional[str] = None
    provider_defaults: Dict[Provider, ProfileConfig] = field(default_factory=dict)
    path: Optional[Path] = None

    def defaults_for(self, provider: Provider) -> ProfileConfig:
        return self.provider_defaults.get(provider, ProfileConfig())


# --- Field validation, shared by the file loader and the resolver --- #

def check_temperature(value: float, source: str) -> float:
    if math.isnan(value) or not 0.0 <= value <= 2.0:
        raise ConfigError(f"Invalid temperature {value} from {source}. Must be in [0.0, 2.0].")
    return value


def check_max_tokens(value: int, source: str) -> int:
    if value <= 0:
        raise ConfigError(f"Invalid max tokens {value} from {source}. Must be > 0.")
    return value


def check_timeout(value: int, source: str) -> int:
    if value <= 0:
        raise ConfigError(f"Invalid timeout {value} from {source}. Must be > 0 seconds.")
    return value


def check_retries(value: int, source: str) -> int:
    if value < 0:
        raise ConfigError(f"Invalid retries {value} from {source}. Must be >= 0.")
    return value


def check_retry_delay(value: int, source: str) -> int:
    if value <= 0:
        raise ConfigError(f"Invalid retry delay {value} from {source}. Must be > 0 milliseconds.")
    return value


def parse_output(raw: str, source: str) -> OutputFormat:
    name = raw.strip().lower()
    try:
        return OutputFormat(name)
    except ValueError:
        supported = ", ".join(fmt.value for fmt in OutputFormat)
        raise ConfigError(
            f"Invalid output '{name}' from {source}. Supported values: {supported}."
        ) from None


def validate_bundle(bundle: ProfileConfig, source: str) -> None:
    """Apply the value checks to every field set in a bundle."""
    if bundle.provider is not None:
        parse_provider(bundle.provider, source)
    if bundle.temperature is not None:
        check_temperature(bundle.temperature, source)
    if bundle.max_tokens is not None:
        check_max_tokens(bundle.max_tokens, source)
    if bundle.timeout is not None:
        check_timeout(bundle.timeout, source)
    if bundle.retries is not None:
        check_retries(bundle.retries, source)
    if bundle.retry_delay is not None:
        check_retry_delay(bundle.retry_delay, source)
    if bundle.output is not None:
        parse_output(bundle.output, source)


# --- Config file location and loading --- #

def config_path(env: Optional[EnvSettings] = None) -> Path:
    """Resolve the config file path: MP_CONFIG, then XDG_CONFIG_HOME, then HOME."""
    env = env or EnvSettings()
    if env.CONFIG and env.CONFIG.strip():
        return Path(env.CONFIG.strip())

    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg) / CONFIG_DIR_NAME / CONFIG_FILE_NAME

    home = os.environ.get("HOME", "").strip()
    if not home:
        raise ConfigError("Cannot resolve config path: set MP_CONFIG or HOME/XDG_CONFIG_HOME.")
    return Path(home) / ".config" / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def profile_source(name: str, path: Path) -> str:
    return f"profile '{name}' in config file '{path}'"


def provider_defaults_source(name: str, path: Path) -> str:
    return f"providers.{name}.defaults in config file '{path}'"


def _build_section(model: type[BaseModel], data: Any, source: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'section'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid {source}: {details}") from None


def load_config_file(path: Path) -> ConfigFile:
    """Read, parse, and eagerly validate every section of the config file.

    A malformed section fails the load even when it is not the one selected
    for this run.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file '{path}': {e}") from e

    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file '{path}': {e}") from e

    profiles: Optional[Dict[str, ProfileConfig]] = None
    raw_profiles = data.get("profiles")
    if raw_profiles is not None:
        if not isinstance(raw_profiles, dict):
            raise ConfigError(f"Failed to parse config file '{path}': 'profiles' must be a table.")
        profiles = {}
        for name, section in raw_profiles.items():
            source = profile_source(name, path)
            bundle = _build_section(ProfileConfig, section, source)
            validate_bundle(bundle, source)
            profiles[name] = bundle

    provider_defaults: Dict[Provider, ProfileConfig] = {}
    raw_providers = data.get("providers")
    if raw_providers is not None:
        if not isinstance(raw_providers, dict):
            raise ConfigError(f"Failed to parse config file '{path}': 'providers' must be a table.")
        for name, section in raw_providers.items():
            try:
                provider = Provider(normalize_provider_name(name))
            except ValueError:
                raise ConfigError(
                    f"Unknown provider section '{name}' in config file '{path}'. "
                    f"Supported values: {supported_values()}."
                ) from None
            source = provider_defaults_source(name, path)
            parsed = _build_section(ProviderSection, section, source)
            validate_bundle(parsed.defaults, source)
            provider_defaults[provider] = parsed.defaults

    logger.debug(
        f"Loaded config file {path}: {len(profiles or {})} profiles, "
        f"{len(provider_defaults)} provider default sections"
    )
    return ConfigFile(path=path, profiles=profiles, provider_defaults=provider_defaults)


def _select_profile(config_file: ConfigFile, name: str) -> ProfileConfig:
    if config_file.profiles is None:
        raise ConfigError(
            f"Config file '{config_file.path}' does not contain a [profiles] section."
        )
    profile = config_file.profiles.get(name)
    if profile is None:
        raise ConfigError(f"Profile '{name}' not found in config file '{config_file.path}'.")
    return profile


def load_sources(profile_name: Optional[str], env: Optional[EnvSettings] = None) -> ConfigSources:
    """Load the profile and provider-default tiers.

    Without a profile name the profile tier is empty; provider defaults are
    still taken from the config file when one exists at the resolved path.
    """
    if profile_name is not None:
        config_file = load_config_file(config_path(env))
        return ConfigSources(
            profile=_select_profile(config_file, profile_name),
            profile_name=profile_name,
            provider_defaults=config_file.provider_defaults,
            path=config_file.path,
        )

    try:
        path = config_path(env)
    except ConfigError:
        logger.debug("No config path could be resolved; skipping provider defaults")
        return ConfigSources()
    if not path.is_file():
        logger.debug(f"Config file {path} not found; no provider defaults")
        return ConfigSources()

    config_file = load_config_file(path)
    return ConfigSources(provider_defaults=config_file.provider_defaults, path=config_file.path)


def validate_config(profile_name: Optional[str] = None, env: Optional[EnvSettings] = None) -> Path:
    """Load the whole config file (and the named profile) and return its path."""
    config_file = load_config_file(config_path(env))
    if profile_name is not None:
        _select_profile(config_file, profile_name)
    return config_file.path
