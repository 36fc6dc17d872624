import io
import json

import httpx
import pytest
import respx

from mpipe.clients import get_client
from mpipe.core import AskLLM, AskRequest, run_ask
from mpipe.errors import ConfigError, MpipeError
from mpipe.providers import Provider, endpoint
from mpipe.resolver import ExplicitInputs

OPENAI_URL = endpoint(Provider.OPENAI)
FIREWORKS_URL = endpoint(Provider.FIREWORKS)


async def no_sleep(seconds: float) -> None:
    return None


def fast_client(provider):
    return get_client(provider, sleep=no_sleep)


def run(request: AskRequest):
    stdout = io.StringIO()
    rendered = AskLLM(request, stdout=stdout, client_factory=fast_client).ask()
    assert stdout.getvalue() == rendered
    return rendered


@pytest.fixture
def secret_keys(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-very-secret")
    monkeypatch.setenv("FIREWORKS_API_KEY", "fw-very-secret")


# --- Dry run --- #

@respx.mock
def test_dry_run_never_contacts_network(secret_keys, capsys):
    request = AskRequest(
        prompt="Main",
        preprompt="Before",
        explicit=ExplicitInputs(provider="fireworks", model="kimi", system="Be brief.", show_usage=True),
        dry_run=True,
    )

    rendered = run(request)

    assert respx.calls.call_count == 0
    envelope = json.loads(rendered)
    assert envelope == {
        "dry_run": True,
        "provider": "fireworks",
        "endpoint": FIREWORKS_URL,
        "model": "kimi",
        "messages": [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Before\n\nMain"},
        ],
        "request": {
            "temperature": None,
            "max_tokens": None,
            "timeout_secs": None,
            "retries": 0,
            "retry_delay_ms": 500,
        },
        "output": "text",
        "show_usage": True,
        "authorization": "Bearer ***REDACTED***",
    }
    captured = capsys.readouterr()
    assert "usage: unavailable latency_ms=0 (dry-run)" in captured.err
    assert "very-secret" not in rendered
    assert "very-secret" not in captured.err


def test_dry_run_without_key_succeeds():
    rendered = run(AskRequest(prompt="Hi", explicit=ExplicitInputs(model="gpt-4o-mini"), dry_run=True))
    assert json.loads(rendered)["authorization"] == "Bearer ***REDACTED***"


def test_verbose_reports_presence_not_value(secret_keys, capsys):
    request = AskRequest(
        prompt="Hello",
        explicit=ExplicitInputs(model="gpt-4o-mini", temperature=0.3),
        dry_run=True,
        verbose=True,
    )

    run(request)

    err = capsys.readouterr().err
    assert (
        f"verbose: provider=openai endpoint={OPENAI_URL} model=gpt-4o-mini output=text "
        "dry_run=true show_usage=false prompt_source=argument messages=1 chars=5 api_key_present=true"
    ) in err
    assert (
        "verbose: options temperature=0.3 max_tokens=n/a timeout_secs=n/a "
        "retries=0 retry_delay_ms=500 backoff=exponential"
    ) in err
    assert "very-secret" not in err


def test_verbose_prints_model_name_verbatim(capsys):
    run(AskRequest(prompt="Hi", explicit=ExplicitInputs(model=":smile:[bold]m"), dry_run=True, verbose=True))
    assert "model=:smile:[bold]m output=text" in capsys.readouterr().err


def test_verbose_stdin_source(capsys):
    class Piped(io.StringIO):
        def isatty(self):
            return False

    stdout = io.StringIO()
    request = AskRequest(explicit=ExplicitInputs(model="m"), dry_run=True, verbose=True)
    AskLLM(request, stdin=Piped("from a pipe\n"), stdout=stdout).ask()

    assert "prompt_source=stdin" in capsys.readouterr().err
    assert json.loads(stdout.getvalue())["messages"][-1]["content"] == "from a pipe"


# --- Live requests --- #

@respx.mock
def test_live_text_output(secret_keys, completion_body):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body("The answer")))
    rendered = run(AskRequest(prompt="Q", explicit=ExplicitInputs(model="gpt-4o-mini")))
    assert rendered == "The answer\n"


@respx.mock
def test_live_json_envelope_matches_dry_run_request_shape(secret_keys, completion_body):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body(
        "first", usage={"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}
    )))
    explicit = ExplicitInputs(model="gpt-4o-mini", max_tokens=20, timeout=10, retries=1, json=True)

    live = json.loads(run(AskRequest(prompt="Q", explicit=explicit)))
    dry = json.loads(run(AskRequest(prompt="Q", explicit=explicit, dry_run=True)))

    assert list(live) == ["provider", "model", "answer", "latency_ms", "request", "usage"]
    assert live["answer"] == "first"
    assert live["usage"] == {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}
    assert isinstance(live["latency_ms"], int)
    assert live["request"] == dry["request"]
    assert live["request"] == {
        "temperature": None, "max_tokens": 20, "timeout_secs": 10, "retries": 1, "retry_delay_ms": 500,
    }


@respx.mock
def test_live_json_usage_null_when_absent(secret_keys, completion_body):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body("ok")))
    rendered = run(AskRequest(prompt="Q", explicit=ExplicitInputs(model="m", output="json")))
    assert json.loads(rendered)["usage"] is None


@respx.mock
def test_show_usage_goes_to_stderr(secret_keys, completion_body, capsys):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body(
        "ok", usage={"total_tokens": 4}
    )))

    rendered = run(AskRequest(prompt="Q", explicit=ExplicitInputs(model="m", show_usage=True)))

    assert rendered == "ok\n"
    err = capsys.readouterr().err
    assert "usage: prompt_tokens=n/a completion_tokens=n/a total_tokens=4 latency_ms=" in err


@respx.mock
def test_fail_on_empty(secret_keys, completion_body):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body("   ")))
    request = AskRequest(prompt="Q", explicit=ExplicitInputs(model="m"), fail_on_empty=True)
    with pytest.raises(MpipeError, match="Model response is empty and --fail-on-empty is enabled."):
        run(request)


@respx.mock
def test_whitespace_answer_allowed_without_flag(secret_keys, completion_body):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body("   ")))
    assert run(AskRequest(prompt="Q", explicit=ExplicitInputs(model="m"))) == "   \n"


@respx.mock
def test_retries_through_orchestrator(secret_keys, completion_body):
    route = respx.post(FIREWORKS_URL).mock(side_effect=[
        httpx.Response(500),
        httpx.Response(502),
        httpx.Response(200, json=completion_body("third")),
    ])
    explicit = ExplicitInputs(provider="fireworks", model="m", retries=2, retry_delay=1)
    assert run(AskRequest(prompt="Q", explicit=explicit)) == "third\n"
    assert route.call_count == 3


@respx.mock
def test_invalid_temperature_fails_before_network(secret_keys):
    with pytest.raises(ConfigError, match="Invalid temperature 2.5"):
        run(AskRequest(prompt="Q", explicit=ExplicitInputs(model="m", temperature=2.5)))
    assert respx.calls.call_count == 0


@respx.mock
def test_save_writes_rendered_output(secret_keys, completion_body, tmp_path):
    respx.post(OPENAI_URL).mock(return_value=httpx.Response(200, json=completion_body("saved answer")))
    target = tmp_path / "out" / "answer.txt"

    run(AskRequest(prompt="Q", explicit=ExplicitInputs(model="m"), save=target))

    assert target.read_text(encoding="utf-8") == "saved answer\n"


def test_run_ask_wrapper():
    stdout = io.StringIO()
    rendered = run_ask(AskRequest(prompt="Q", explicit=ExplicitInputs(model="m"), dry_run=True), stdout=stdout)
    assert stdout.getvalue() == rendered
