import json
import os

import pytest

from mpipe.errors import OutputError
from mpipe.models.envelope import AskEnvelope, RequestEcho
from mpipe.models.message import Usage
from mpipe.utils.output import format_usage_line, render_json, render_text, write_output


def test_render_text_adds_single_newline():
    assert render_text("answer") == "answer\n"
    assert render_text("answer\n") == "answer\n"


def test_render_json_is_compact_single_line():
    envelope = AskEnvelope(
        provider="openai", model="m", answer="first", latency_ms=12,
        request=RequestEcho(retries=0, retry_delay_ms=500),
    )
    rendered = render_json(envelope)
    assert rendered.endswith("\n")
    assert rendered.count("\n") == 1
    assert '"answer":"first"' in rendered
    assert json.loads(rendered)["usage"] is None


def test_usage_line_full():
    usage = Usage(prompt_tokens=5, completion_tokens=2, total_tokens=7)
    assert format_usage_line(usage, 42) == (
        "usage: prompt_tokens=5 completion_tokens=2 total_tokens=7 latency_ms=42"
    )


def test_usage_line_partial():
    assert format_usage_line(Usage(total_tokens=7), 3) == (
        "usage: prompt_tokens=n/a completion_tokens=n/a total_tokens=7 latency_ms=3"
    )


def test_usage_line_unavailable():
    assert format_usage_line(None, 8) == "usage: unavailable latency_ms=8"
    assert format_usage_line(Usage(), 8) == "usage: unavailable latency_ms=8"


def test_write_output_creates_parents_and_overwrites(tmp_path):
    target = tmp_path / "nested" / "dir" / "answer.txt"

    write_output(target, "first\n")
    assert target.read_text(encoding="utf-8") == "first\n"

    write_output(target, "second\n")
    assert target.read_text(encoding="utf-8") == "second\n"
    assert sorted(os.listdir(target.parent)) == ["answer.txt"]


def test_write_output_cleans_up_on_rename_failure(tmp_path, monkeypatch):
    target = tmp_path / "out" / "answer.txt"

    def failing_replace(src, dst):
        raise OSError("rename failed")

    monkeypatch.setattr("mpipe.utils.output.os.replace", failing_replace)

    with pytest.raises(OutputError, match="Failed to write output file"):
        write_output(target, "content")
    assert os.listdir(target.parent) == []


def test_write_output_parent_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(OutputError, match="Failed to create directory"):
        write_output(blocker / "answer.txt", "content")
