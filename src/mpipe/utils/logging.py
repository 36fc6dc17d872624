"""
Rich-formatted logging for mpipe.

Three verbosity levels:
- Normal: warnings and errors only (retries, failures)
- Verbose (--verbose): INFO events such as the resolved provider and timing
- Debug (--debug): low-level DEBUG messages, unformatted

Usage:
    from .utils.logging import get_console, setup_logging

    setup_logging(verbose=args.verbose, debug=args.debug)
    logger = logging.getLogger(__name__)
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_console: Console | None = None

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "asyncio",
]


def get_console() -> Console:
    """Get the shared stderr console instance."""
    global _console
    if _console is None:
        _console = Console(stderr=True, highlight=False, emoji=False)
    return _console


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        verbose: Enable INFO-level logging
        debug: Enable DEBUG-level logging with a plain format
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    if debug:
        # Debug mode: simple format, no rich
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(
                console=get_console(),
                show_path=False,
                rich_tracebacks=True,
                markup=False,
            )],
            force=True,
        )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING if not debug else logging.INFO)
