"""
Exception hierarchy for mpipe.

Every failure that should end an invocation derives from MpipeError; the CLI
prints ``str(error)`` as a single line on stderr and exits with status 1.

Provider errors always carry the provider that produced them so that the
message names the backend even when several are configured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .providers import Provider

# Maximum response body length kept in API error messages
MAX_ERROR_BODY_LENGTH = 500


class MpipeError(Exception):
    """Base class for all mpipe errors."""


class ConfigError(MpipeError):
    """Config file unreadable/unparsable, profile missing, or a value failed validation."""


class PromptError(MpipeError):
    """No usable prompt could be read from the argument or stdin."""


class OutputError(MpipeError):
    """The rendered output could not be written to the requested file."""


class ProviderError(MpipeError):
    """Base class for failures raised by a provider client."""

    def __init__(self, provider: Provider, message: str):
        super().__init__(message)
        self.provider = provider


class MissingApiKeyError(ProviderError):
    """The provider's credential environment variable is unset or blank."""

    def __init__(self, provider: Provider, key_env: str):
        super().__init__(provider, f"{key_env} is not set in the environment")
        self.key_env = key_env


class ProviderRequestError(ProviderError):
    """Network-level failure (or an undecodable success body)."""

    def __init__(self, provider: Provider, reason: str):
        super().__init__(provider, f"{provider.value} request failed: {reason}")
        self.reason = reason


class ProviderApiError(ProviderError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, provider: Provider, status: int, body: str):
        shown = body if len(body) <= MAX_ERROR_BODY_LENGTH else body[:MAX_ERROR_BODY_LENGTH] + "..."
        super().__init__(provider, f"{provider.value} API error {status}: {shown}")
        self.status = status
        self.body = body


class EmptyResponseError(ProviderError):
    """The call succeeded but carried no assistant content."""

    def __init__(self, provider: Provider):
        super().__init__(provider, f"{provider.value} response did not contain message content")
