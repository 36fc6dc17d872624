from typing import List

from ..errors import EmptyResponseError
from ..models.message import AskOptions, AskResponse, ChatMessage, extract_text_content
from ..providers import Provider
from .base import ProviderClient
from .utils import build_chat_payload, first_choice_message, parse_usage


class FireworksClient(ProviderClient):
    """Client for the Fireworks inference chat-completions API.

    Fireworks may return assistant content as a list of typed parts; text
    parts are joined into a single answer.
    """

    provider = Provider.FIREWORKS

    def build_payload(self, messages: List[ChatMessage], model: str, options: AskOptions) -> dict:
        return build_chat_payload(messages, model, options)

    def parse_response(self, body: dict) -> AskResponse:
        message = first_choice_message(body) or {}
        content = extract_text_content(message.get("content"))
        if not content:
            raise EmptyResponseError(self.provider)
        return AskResponse(content=content, usage=parse_usage(body))
