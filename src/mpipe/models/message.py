from dataclasses import dataclass

ROLE_SYSTEM = "system"
ROLE_USER = "user"
VALID_ROLES = (ROLE_SYSTEM, ROLE_USER)


class ChatMessage:
    """Canonical chat message sent to every provider."""

    def __init__(self, role: str, content: str):
        if role not in VALID_ROLES:
            raise ValueError(f"Unsupported message role '{role}'")
        self.role = role
        self.content = content

    @classmethod
    def system(cls, content: str) -> 'ChatMessage':
        return cls(ROLE_SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> 'ChatMessage':
        return cls(ROLE_USER, content)

    def to_api_format(self) -> dict:
        """Convert to the chat-completions wire format"""
        return {"role": self.role, "content": self.content}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChatMessage):
            return NotImplemented
        return self.role == other.role and self.content == other.content

    def __repr__(self) -> str:
        return f"ChatMessage(role={self.role!r}, content={self.content!r})"


def extract_text_content(content) -> str:
    """Return plain text from a string or a list of multipart content items."""
    if isinstance(content, list):
        # Only text parts are kept; image or audio parts have no textual answer
        return "".join(
            item.get("text", "") for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        )
    if content is None:
        return ""
    return str(content)


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    def has_any(self) -> bool:
        return any(
            value is not None
            for value in (self.prompt_tokens, self.completion_tokens, self.total_tokens)
        )


@dataclass(frozen=True)
class AskResponse:
    content: str
    usage: Usage | None = None


@dataclass(frozen=True)
class AskOptions:
    """Per-request options handed to a provider client."""
    temperature: float | None = None
    max_tokens: int | None = None
    timeout: int | None = None
    retries: int = 0
    retry_delay: int = 500
