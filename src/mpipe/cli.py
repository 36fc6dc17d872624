import argparse
import logging
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core import AskRequest, run_ask
from .errors import MpipeError
from .models.request import OutputFormat
from .providers import Provider, normalize_provider_name
from .resolver import ExplicitInputs
from .utils.config import EnvSettings, validate_config
from .utils.logging import get_console, setup_logging

logger = logging.getLogger(__name__)


def render_version(env: Optional[EnvSettings] = None) -> str:
    env = env or EnvSettings()
    commit = (env.GIT_SHA or "").strip() or "unknown"
    built = (env.BUILD_TS or "").strip() or "unknown"
    return f"%(prog)s {__version__}\ncommit: {commit}\nbuilt: {built}"


def _lowered(value: str) -> str:
    return value.strip().lower()


def add_ask_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by ``mpask`` and ``mpipe ask``."""
    parser.add_argument("input", nargs="?", default=None, metavar="PROMPT", help="Question to ask. Read from stdin when omitted.")
    parser.add_argument("--version", action="version", version=render_version())
    parser.add_argument("--profile", type=str, default=None, help="Named profile from the config file")
    parser.add_argument("--provider", type=normalize_provider_name, choices=[p.value for p in Provider], default=None, help="Provider to use")
    parser.add_argument("--model", type=str, default=None, help="Model identifier sent to the provider")
    parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature in [0.0, 2.0]")
    parser.add_argument("--max-tokens", dest="max_tokens", type=int, default=None, help="Maximum output tokens")
    parser.add_argument("--timeout", type=int, default=None, help="Per-attempt request timeout in seconds")
    parser.add_argument("--retries", type=int, default=None, help="Retries after a retryable failure (default: 0)")
    parser.add_argument("--retry-delay", dest="retry_delay", type=int, default=None, help="Base retry delay in milliseconds (default: 500)")
    parser.add_argument("--output", type=_lowered, choices=[f.value for f in OutputFormat], default=None, help="Output format")
    parser.add_argument("--json", action="store_true", help="Shorthand for --output json")
    parser.add_argument("--show-usage", dest="show_usage", action="store_true", help="Report token usage and latency on stderr")
    parser.add_argument("--verbose", action="store_true", help="Print resolved request details on stderr")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging output.")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Print the request that would be sent and exit")
    parser.add_argument("--fail-on-empty", dest="fail_on_empty", action="store_true", help="Fail when the answer is empty or whitespace")
    parser.add_argument("--save", type=Path, default=None, metavar="PATH", help="Also write the output to PATH")
    parser.add_argument("--system", type=str, default=None, help="System prompt")
    parser.add_argument("--prompt", type=str, default=None, help="Text placed before the main prompt")
    parser.add_argument("--postprompt", type=str, default=None, help="Text placed after the main prompt")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mpask",
        description="Ask a question to an LLM provider",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_ask_arguments(parser)
    return parser.parse_args(argv)


def build_mpipe_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpipe",
        description="Pipe prompts through LLM providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=render_version())
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser(
        "ask", help="Ask a question to an LLM provider", formatter_class=argparse.RawDescriptionHelpFormatter
    )
    add_ask_arguments(ask_parser)

    config_parser = subparsers.add_parser("config", help="Inspect the config file")
    config_subparsers = config_parser.add_subparsers(dest="config_command", required=True)
    check_parser = config_subparsers.add_parser("check", help="Validate the config file and exit")
    check_parser.add_argument("--profile", type=str, default=None, help="Also require this profile to exist")
    return parser


def ask_request_from_args(args: argparse.Namespace) -> AskRequest:
    explicit = ExplicitInputs(
        profile=args.profile,
        provider=args.provider,
        model=args.model,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
        timeout=args.timeout,
        retries=args.retries,
        retry_delay=args.retry_delay,
        output=args.output,
        json=args.json,
        show_usage=args.show_usage,
        system=args.system,
    )
    return AskRequest(
        prompt=args.input,
        preprompt=args.prompt,
        postprompt=args.postprompt,
        explicit=explicit,
        dry_run=args.dry_run,
        verbose=args.verbose,
        fail_on_empty=args.fail_on_empty,
        save=args.save,
    )


def report_error(error: MpipeError) -> int:
    # One line on stderr; newlines in provider bodies are flattened
    message = " ".join(str(error).splitlines())
    get_console().print(message, markup=False, highlight=False, emoji=False, soft_wrap=True)
    return 1


def run_ask_command(args: argparse.Namespace) -> int:
    setup_logging(verbose=args.verbose, debug=args.debug)
    try:
        run_ask(ask_request_from_args(args))
    except MpipeError as e:
        logger.debug("Ask failed", exc_info=True)
        return report_error(e)
    return 0


def run_config_check(args: argparse.Namespace) -> int:
    setup_logging()
    try:
        path = validate_config(args.profile)
    except MpipeError as e:
        return report_error(e)
    print(f"config OK: {path}")
    return 0


def mpask_main(argv: Optional[List[str]] = None) -> int:
    return run_ask_command(parse_arguments(argv))


def mpipe_main(argv: Optional[List[str]] = None) -> int:
    args = build_mpipe_parser().parse_args(argv)
    if args.command == "ask":
        return run_ask_command(args)
    return run_config_check(args)
