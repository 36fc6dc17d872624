import asyncio
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from .clients import ProviderClient, get_client
from .clients.utils import format_verbose_params
from .errors import MpipeError
from .models.envelope import AskEnvelope, DryRunEnvelope, MessageEcho, RequestEcho, UsageEcho
from .models.message import AskResponse, ChatMessage
from .models.request import OutputFormat, RequestConfig
from .providers import Provider, endpoint, is_api_key_present
from .resolver import ExplicitInputs, resolve_config
from .utils.input_handler import PromptInput, read_prompt
from .utils.logging import get_console
from .utils.output import dry_run_usage_line, format_usage_line, render_json, render_text, write_output
from .utils.prompts import build_messages, compose_prompt

logger = logging.getLogger(__name__)


@dataclass
class AskRequest:
    """Everything one ``ask`` invocation was given on the command line."""
    prompt: Optional[str] = None
    preprompt: Optional[str] = None
    postprompt: Optional[str] = None
    explicit: ExplicitInputs = field(default_factory=ExplicitInputs)
    dry_run: bool = False
    verbose: bool = False
    fail_on_empty: bool = False
    save: Optional[Path] = None


class AskLLM:
    """Runs one question through prompt composition, resolution, and dispatch.

    ``client_factory`` builds the provider client for live requests; tests
    swap it for one bound to a mocked transport.
    """

    def __init__(
        self,
        request: AskRequest,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        client_factory: Callable[[Provider], ProviderClient] = get_client,
    ):
        self.request = request
        self.stdin = stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.client_factory = client_factory
        self.console = get_console()

    def _diag(self, line: str) -> None:
        self.console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def _log_verbose(self, config: RequestConfig, prompt: PromptInput, messages: List[ChatMessage]) -> None:
        # Presence only; the key value is never read here
        self._diag("verbose: " + format_verbose_params(
            provider=config.provider.value,
            endpoint=endpoint(config.provider),
            model=config.model,
            output=config.output.value,
            dry_run=self.request.dry_run,
            show_usage=config.show_usage,
            prompt_source=prompt.source.value,
            messages=len(messages),
            chars=sum(len(message.content) for message in messages),
            api_key_present=is_api_key_present(config.provider),
        ))
        self._diag("verbose: options " + format_verbose_params(
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_secs=config.timeout,
            retries=config.retries,
            retry_delay_ms=config.retry_delay,
            backoff="exponential",
        ))

    def _emit(self, rendered: str) -> None:
        self.stdout.write(rendered)
        self.stdout.flush()
        if self.request.save is not None:
            write_output(self.request.save, rendered)

    def _dry_run(self, config: RequestConfig, messages: List[ChatMessage]) -> str:
        envelope = DryRunEnvelope(
            provider=config.provider.value,
            endpoint=endpoint(config.provider),
            model=config.model,
            messages=[MessageEcho.from_message(m) for m in messages],
            request=RequestEcho.from_config(config),
            output=config.output,
            show_usage=config.show_usage,
        )
        rendered = render_json(envelope)
        self._emit(rendered)
        if config.show_usage:
            self._diag(dry_run_usage_line())
        return rendered

    async def _dispatch(self, config: RequestConfig, messages: List[ChatMessage]) -> AskResponse:
        client = self.client_factory(config.provider)
        return await client.ask(messages, config.model, config.ask_options())

    def ask(self) -> str:
        """Run the request and return exactly what was written to stdout.

        Raises:
            MpipeError: Any prompt, configuration, provider, or output failure.
        """
        prompt = read_prompt(self.request.prompt, self.stdin)
        composed = compose_prompt(self.request.preprompt, prompt.text, self.request.postprompt)
        config = resolve_config(self.request.explicit)
        messages = build_messages(config.system, composed)

        if self.request.verbose:
            self._log_verbose(config, prompt, messages)

        if self.request.dry_run:
            return self._dry_run(config, messages)

        logger.info(f"Sending {len(messages)} message(s) to {config.provider.value} model {config.model}")
        start = time.monotonic()
        response = asyncio.run(self._dispatch(config, messages))
        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(f"Response received in {latency_ms} ms")

        if self.request.fail_on_empty and not response.content.strip():
            raise MpipeError("Model response is empty and --fail-on-empty is enabled.")

        if config.show_usage:
            self._diag(format_usage_line(response.usage, latency_ms))

        if config.output == OutputFormat.JSON:
            rendered = render_json(AskEnvelope(
                provider=config.provider.value,
                model=config.model,
                answer=response.content,
                latency_ms=latency_ms,
                request=RequestEcho.from_config(config),
                usage=UsageEcho.from_usage(response.usage),
            ))
        else:
            rendered = render_text(response.content)

        self._emit(rendered)
        return rendered


def run_ask(request: AskRequest, **kwargs) -> str:
    return AskLLM(request, **kwargs).ask()
