"""
Pydantic models for the JSON envelopes written to stdout.

The ``request`` echo is shared by the dry-run and live envelopes so both
always report the same field names.
"""

from typing import Literal

from pydantic import BaseModel

from .message import ChatMessage, Usage
from .request import OutputFormat, RequestConfig

REDACTED_AUTHORIZATION = "Bearer ***REDACTED***"


class RequestEcho(BaseModel):
    """Effective request options, in wire units."""
    temperature: float | None = None
    max_tokens: int | None = None
    timeout_secs: int | None = None
    retries: int
    retry_delay_ms: int

    @classmethod
    def from_config(cls, config: RequestConfig) -> "RequestEcho":
        return cls(
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_secs=config.timeout,
            retries=config.retries,
            retry_delay_ms=config.retry_delay,
        )


class UsageEcho(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def from_usage(cls, usage: Usage | None) -> "UsageEcho | None":
        if usage is None or not usage.has_any():
            return None
        return cls(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )


class MessageEcho(BaseModel):
    role: Literal["system", "user"]
    content: str

    @classmethod
    def from_message(cls, message: ChatMessage) -> "MessageEcho":
        return cls(role=message.role, content=message.content)


class AskEnvelope(BaseModel):
    """Live answer, rendered with --json or output=json."""
    provider: str
    model: str
    answer: str
    latency_ms: int
    request: RequestEcho
    usage: UsageEcho | None = None


class DryRunEnvelope(BaseModel):
    """What would have been sent; never carries a real credential."""
    dry_run: bool = True
    provider: str
    endpoint: str
    model: str
    messages: list[MessageEcho]
    request: RequestEcho
    output: OutputFormat
    show_usage: bool
    authorization: str = REDACTED_AUTHORIZATION
