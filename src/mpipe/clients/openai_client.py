from typing import List

from ..errors import EmptyResponseError
from ..models.message import AskOptions, AskResponse, ChatMessage
from ..providers import Provider
from .base import ProviderClient
from .utils import build_chat_payload, first_choice_message, parse_usage


class OpenAIClient(ProviderClient):
    """Client for the OpenAI chat-completions API"""

    provider = Provider.OPENAI

    def build_payload(self, messages: List[ChatMessage], model: str, options: AskOptions) -> dict:
        return build_chat_payload(messages, model, options)

    def parse_response(self, body: dict) -> AskResponse:
        message = first_choice_message(body) or {}
        content = message.get("content")
        if not isinstance(content, str) or not content:
            raise EmptyResponseError(self.provider)
        return AskResponse(content=content, usage=parse_usage(body))
