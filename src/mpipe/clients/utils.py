"""Shared helpers for the OpenAI-compatible chat-completions clients."""

from typing import Any, List

from ..models.message import AskOptions, ChatMessage, Usage

USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


def build_chat_payload(messages: List[ChatMessage], model: str, options: AskOptions) -> dict:
    """Build the canonical request body; unset options are omitted."""
    payload: dict[str, Any] = {
        "model": model,
        "messages": [msg.to_api_format() for msg in messages],
    }
    if options.temperature is not None:
        payload["temperature"] = options.temperature
    if options.max_tokens is not None:
        payload["max_tokens"] = options.max_tokens
    return payload


def first_choice_message(body: dict) -> dict | None:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    message = choice.get("message")
    return message if isinstance(message, dict) else None


def parse_usage(body: dict) -> Usage | None:
    """Read the optional usage object; non-integer counts are treated as missing."""
    raw = body.get("usage")
    if not isinstance(raw, dict):
        return None
    counts = {}
    for name in USAGE_FIELDS:
        value = raw.get(name)
        # bool is an int subclass but never a token count
        counts[name] = value if isinstance(value, int) and not isinstance(value, bool) else None
    return Usage(**counts)


def _format_value(value) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def format_verbose_params(**params) -> str:
    """Format parameters as ``key=value`` pairs; unset values show as n/a."""
    return " ".join(f"{key}={_format_value(value)}" for key, value in params.items())
