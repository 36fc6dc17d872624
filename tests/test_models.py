import pytest

from mpipe.models.envelope import RequestEcho, UsageEcho
from mpipe.models.message import ChatMessage, Usage, extract_text_content
from mpipe.models.request import OutputFormat, RequestConfig
from mpipe.providers import Provider


def test_message_initialization():
    msg = ChatMessage(role="user", content="Hello, world!")
    assert msg.role == "user"
    assert msg.content == "Hello, world!"


def test_message_rejects_unknown_role():
    with pytest.raises(ValueError):
        ChatMessage(role="assistant", content="Hi")


def test_message_to_api_format():
    assert ChatMessage.user("API request").to_api_format() == {"role": "user", "content": "API request"}


def test_extract_text_content_joins_text_parts():
    content = [
        {"type": "text", "text": "Hello"},
        {"type": "image_url", "image_url": {"url": "https://example.com/a.png"}},
        {"type": "text", "text": " world"},
    ]
    assert extract_text_content(content) == "Hello world"
    assert extract_text_content(None) == ""
    assert extract_text_content("plain") == "plain"


def test_usage_has_any():
    assert not Usage().has_any()
    assert Usage(total_tokens=3).has_any()


def test_usage_echo_is_none_without_fields():
    assert UsageEcho.from_usage(None) is None
    assert UsageEcho.from_usage(Usage()) is None
    assert UsageEcho.from_usage(Usage(prompt_tokens=1)).model_dump() == {
        "prompt_tokens": 1, "completion_tokens": None, "total_tokens": None,
    }


def test_request_echo_uses_wire_units():
    config = RequestConfig(
        provider=Provider.OPENAI, model="gpt-4o-mini", temperature=0.5, max_tokens=10,
        timeout=30, retries=2, retry_delay=250, output=OutputFormat.JSON,
    )
    assert RequestEcho.from_config(config).model_dump() == {
        "temperature": 0.5,
        "max_tokens": 10,
        "timeout_secs": 30,
        "retries": 2,
        "retry_delay_ms": 250,
    }
