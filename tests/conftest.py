import textwrap

import pytest

MP_VARS = [
    "MP_PROVIDER", "MP_MODEL", "MP_TEMPERATURE", "MP_MAX_TOKENS", "MP_TIMEOUT",
    "MP_RETRIES", "MP_RETRY_DELAY", "MP_CONFIG", "MP_GIT_SHA", "MP_BUILD_TS",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the real environment and any real config file out of every test."""
    for name in MP_VARS + ["OPENAI_API_KEY", "FIREWORKS_API_KEY", "XDG_CONFIG_HOME"]:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def write_config(monkeypatch, tmp_path):
    """Write a TOML config file and point MP_CONFIG at it."""
    def _write(content: str):
        path = tmp_path / "config.toml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        monkeypatch.setenv("MP_CONFIG", str(path))
        return path
    return _write


@pytest.fixture
def completion_body():
    """Build an OpenAI-style chat completion response body."""
    def _body(content="Hello!", usage=None) -> dict:
        body = {
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        }
        if usage is not None:
            body["usage"] = usage
        return body
    return _body
