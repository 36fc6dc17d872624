import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from ..errors import OutputError
from ..models.message import Usage

logger = logging.getLogger(__name__)


def render_text(answer: str) -> str:
    """Plain answer, always newline-terminated."""
    return answer if answer.endswith("\n") else answer + "\n"


def render_json(envelope: BaseModel) -> str:
    """Compact single-line JSON followed by a newline."""
    return envelope.model_dump_json() + "\n"


def _field(value: Optional[int]) -> str:
    return "n/a" if value is None else str(value)


def format_usage_line(usage: Optional[Usage], latency_ms: int) -> str:
    if usage is None or not usage.has_any():
        return f"usage: unavailable latency_ms={latency_ms}"
    return (
        f"usage: prompt_tokens={_field(usage.prompt_tokens)} "
        f"completion_tokens={_field(usage.completion_tokens)} "
        f"total_tokens={_field(usage.total_tokens)} "
        f"latency_ms={latency_ms}"
    )


def dry_run_usage_line() -> str:
    return "usage: unavailable latency_ms=0 (dry-run)"


def write_output(path: Path, content: str) -> None:
    """Atomically replace ``path`` with ``content``.

    The content goes to a temporary file in the target directory first and
    is then renamed over the target, so readers never see a partial file.

    Raises:
        OutputError: The directory could not be created or the file written.
    """
    path = Path(path)
    directory = path.parent if str(path.parent) else Path(".")
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Failed to create directory '{directory}': {e}") from e

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    except OSError as e:
        raise OutputError(f"Failed to write output file '{path}': {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            logger.debug(f"Could not remove temporary file {tmp_name}")
        raise OutputError(f"Failed to write output file '{path}': {e}") from e

    logger.debug(f"Saved {len(content)} chars to {path}")
