import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TextIO

from ..errors import PromptError


class PromptSource(str, Enum):
    ARGUMENT = "argument"
    STDIN = "stdin"


@dataclass(frozen=True)
class PromptInput:
    text: str
    source: PromptSource


def read_prompt(argument: Optional[str], stdin: Optional[TextIO] = None) -> PromptInput:
    """Take the prompt from the positional argument, or from piped stdin.

    The argument always wins over stdin. An interactive terminal is never
    read from.

    Raises:
        PromptError: No argument and stdin is a TTY, or stdin is blank.
    """
    if argument is not None:
        return PromptInput(text=argument, source=PromptSource.ARGUMENT)

    stream = stdin if stdin is not None else sys.stdin
    if stream is None or stream.isatty():
        raise PromptError("No prompt provided. Pass an argument or pipe stdin.")

    try:
        text = stream.read().strip()
    except OSError as e:
        raise PromptError(f"Failed to read stdin: {e}") from e
    if not text:
        raise PromptError("Prompt is empty.")
    return PromptInput(text=text, source=PromptSource.STDIN)
