from dataclasses import dataclass
from enum import Enum

from .message import AskOptions
from ..providers import Provider


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


DEFAULT_RETRIES = 0
DEFAULT_RETRY_DELAY_MS = 500


@dataclass(frozen=True)
class RequestConfig:
    """Effective settings for one invocation, after all tiers are merged."""
    provider: Provider
    model: str
    temperature: float | None = None
    max_tokens: int | None = None
    timeout: int | None = None
    retries: int = DEFAULT_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS
    output: OutputFormat = OutputFormat.TEXT
    show_usage: bool = False
    system: str | None = None

    def ask_options(self) -> AskOptions:
        return AskOptions(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
            retries=self.retries,
            retry_delay=self.retry_delay,
        )
