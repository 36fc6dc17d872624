import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List

import httpx

from ..errors import MissingApiKeyError, ProviderApiError, ProviderRequestError
from ..models.message import AskOptions, AskResponse, ChatMessage
from ..providers import Provider, api_key_env, endpoint
from .retry import ApiFailure, RequestFailure, RetryConfig, post_json_with_retry

logger = logging.getLogger(__name__)


class ProviderClient(ABC):
    """Abstract base class for chat-completions provider clients.

    Subclasses set ``provider`` and translate between the canonical request
    and response shapes and the provider's JSON schema.
    """

    provider: Provider

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.sleep = sleep

    @property
    def endpoint(self) -> str:
        return endpoint(self.provider)

    def _get_api_key(self) -> str:
        key_env = api_key_env(self.provider)
        api_key = os.environ.get(key_env, "").strip()
        if not api_key:
            raise MissingApiKeyError(self.provider, key_env)
        return api_key

    @abstractmethod
    def build_payload(self, messages: List[ChatMessage], model: str, options: AskOptions) -> dict:
        """Serialize the canonical request into the provider's JSON body."""

    @abstractmethod
    def parse_response(self, body: dict) -> AskResponse:
        """Extract content and usage from the provider's JSON response.

        Raises:
            EmptyResponseError: If there is no non-empty assistant content.
        """

    async def ask(self, messages: List[ChatMessage], model: str, options: AskOptions) -> AskResponse:
        """Send one chat request and return the canonical response.

        Raises:
            MissingApiKeyError: The credential variable is not set.
            ProviderRequestError: Network failure after the retry budget.
            ProviderApiError: Non-success HTTP status after the retry budget.
            EmptyResponseError: The provider returned no content.
        """
        api_key = self._get_api_key()
        payload = self.build_payload(messages, model, options)
        retry_config = RetryConfig(
            timeout=options.timeout,
            retries=options.retries,
            retry_delay=options.retry_delay,
        )
        logger.debug(
            f"POST {self.endpoint} model={model} messages={len(messages)} "
            f"max_attempts={retry_config.max_attempts}"
        )

        if self.http_client is not None:
            response = await self._send(self.http_client, api_key, payload, retry_config)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._send(client, api_key, payload, retry_config)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderRequestError(self.provider, f"invalid JSON response: {e}") from e
        if not isinstance(body, dict):
            raise ProviderRequestError(self.provider, "unexpected response shape")
        return self.parse_response(body)

    async def _send(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        payload: dict,
        retry_config: RetryConfig,
    ) -> httpx.Response:
        try:
            return await post_json_with_retry(
                client, self.endpoint, api_key, payload, retry_config, sleep=self.sleep
            )
        except RequestFailure as e:
            raise ProviderRequestError(self.provider, str(e)) from e.error
        except ApiFailure as e:
            raise ProviderApiError(self.provider, e.status, e.body) from e
