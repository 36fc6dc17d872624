"""
Retry/backoff executor for provider HTTP calls.

One request per attempt, strictly sequential. Each attempt's outcome is
classified as success, retryable failure, or fatal failure, and an explicit
state machine decides what happens next:

    ATTEMPTING --success--------------------------------> DONE
    ATTEMPTING --retryable, attempts left--> BACKOFF --> ATTEMPTING
    ATTEMPTING --fatal, or no attempts left-------------> FAILED

Retry on:
- Timeouts, connection failures (refused, reset, or closed by the server
  before a response), failures while sending the request
- HTTP 429 and any 5xx

Do not retry on:
- Any other 4xx, or any other transport error

Backoff before retry n (0-based count of failed attempts so far) is
``base_delay_ms * 2**n`` capped at 30s. The per-attempt timeout applies to
each HTTP call; the whole sequence has no overall deadline.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import httpx

logger = logging.getLogger(__name__)

MAX_BACKOFF_MS = 30_000
# 2**32 already exceeds the cap for any positive base delay
_MAX_SHIFT = 32

# Timeouts, refused or dropped connections, and failures while sending
RETRYABLE_REQUEST_ERRORS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class RetryConfig:
    timeout: Optional[int] = None
    retries: int = 0
    retry_delay: int = 500

    @property
    def max_attempts(self) -> int:
        return self.retries + 1


class TransportFailure(Exception):
    """Final failure of the retry sequence, carrying the last attempt's cause."""


class RequestFailure(TransportFailure):
    """Network-level failure; no HTTP response was received."""

    def __init__(self, error: httpx.RequestError):
        super().__init__(str(error) or error.__class__.__name__)
        self.error = error


class ApiFailure(TransportFailure):
    """The server answered with a non-success status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"HTTP {status}")
        self.status = status
        self.body = body


@dataclass(frozen=True)
class Success:
    response: httpx.Response


@dataclass(frozen=True)
class RetryableFailure:
    failure: TransportFailure


@dataclass(frozen=True)
class FatalFailure:
    failure: TransportFailure


AttemptOutcome = Union[Success, RetryableFailure, FatalFailure]


class AttemptState(Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    DONE = "done"
    FAILED = "failed"


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    """Delay before the retry that follows failed attempt ``attempt``."""
    shift = min(max(attempt, 0), _MAX_SHIFT)
    return min(base_delay_ms * (1 << shift), MAX_BACKOFF_MS)


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


def is_retryable_request_error(error: httpx.RequestError) -> bool:
    return isinstance(error, RETRYABLE_REQUEST_ERRORS)


def classify_response(response: httpx.Response) -> AttemptOutcome:
    if response.is_success:
        return Success(response)
    failure = ApiFailure(response.status_code, response.text)
    if is_retryable_status(response.status_code):
        return RetryableFailure(failure)
    return FatalFailure(failure)


def classify_error(error: httpx.RequestError) -> AttemptOutcome:
    failure = RequestFailure(error)
    if is_retryable_request_error(error):
        return RetryableFailure(failure)
    return FatalFailure(failure)


class RetryExecutor:
    """Runs one logical request through the attempt/backoff state machine."""

    def __init__(
        self,
        config: RetryConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.sleep = sleep
        self.attempts = 0

    def next_state(self, outcome: AttemptOutcome, attempt: int) -> AttemptState:
        if isinstance(outcome, Success):
            return AttemptState.DONE
        if isinstance(outcome, RetryableFailure) and attempt + 1 < self.config.max_attempts:
            return AttemptState.BACKOFF
        return AttemptState.FAILED

    async def _attempt(self, send: Callable[[], Awaitable[httpx.Response]]) -> AttemptOutcome:
        self.attempts += 1
        try:
            response = await send()
        except httpx.RequestError as e:
            return classify_error(e)
        return classify_response(response)

    async def run(self, send: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        """Drive ``send`` until success or a final failure.

        Raises:
            RequestFailure: The last attempt failed at the network level.
            ApiFailure: The last attempt got a non-success HTTP status.
        """
        attempt = 0
        state = AttemptState.ATTEMPTING
        outcome: Optional[AttemptOutcome] = None

        while True:
            if state is AttemptState.ATTEMPTING:
                outcome = await self._attempt(send)
                state = self.next_state(outcome, attempt)
            elif state is AttemptState.BACKOFF:
                delay_ms = backoff_delay_ms(attempt, self.config.retry_delay)
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.config.max_attempts}): "
                    f"{str(outcome.failure)[:200]}. Retrying in {delay_ms}ms..."
                )
                await self.sleep(delay_ms / 1000)
                attempt += 1
                state = AttemptState.ATTEMPTING
            elif state is AttemptState.DONE:
                return outcome.response
            else:
                raise outcome.failure


async def post_json_with_retry(
    client: httpx.AsyncClient,
    url: str,
    api_key: str,
    payload: dict,
    config: RetryConfig,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """POST ``payload`` as JSON with bearer auth, retrying per ``config``."""
    timeout = float(config.timeout) if config.timeout is not None else None
    headers = {"Authorization": f"Bearer {api_key}"}

    async def send() -> httpx.Response:
        return await client.post(url, json=payload, headers=headers, timeout=timeout)

    return await RetryExecutor(config, sleep).run(send)
