from typing import List, Optional

from ..models.message import ChatMessage

PROMPT_SEPARATOR = "\n\n"


def non_empty(value: Optional[str]) -> Optional[str]:
    """Return the trimmed value, or None when it is missing or blank."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def compose_prompt(preprompt: Optional[str], main_prompt: str, postprompt: Optional[str]) -> str:
    """Join pre-prompt, main prompt, and post-prompt with blank lines, skipping blank segments."""
    parts = []
    if preprompt is not None and preprompt.strip():
        parts.append(preprompt)
    parts.append(main_prompt)
    if postprompt is not None and postprompt.strip():
        parts.append(postprompt)
    return PROMPT_SEPARATOR.join(parts)


def build_messages(system: Optional[str], prompt: str) -> List[ChatMessage]:
    """System message first (when set), then the user prompt."""
    messages = []
    system = non_empty(system)
    if system is not None:
        messages.append(ChatMessage.system(system))
    messages.append(ChatMessage.user(prompt))
    return messages
