#!/usr/bin/env python
import sys
from rich.console import Console
from mpipe.cli import mpask_main, mpipe_main

console = Console(stderr=True)


def _run(entry, argv=None) -> None:
    try:
        code = entry(argv)
    except Exception as e:
        console.print(f"[bold red]An unexpected error occurred in the application:[/bold red] {e}", soft_wrap=True)
        code = 1
    sys.exit(code)


def main(argv=None) -> None:
    """Entry point for ``mpask``."""
    _run(mpask_main, argv)


def mpipe(argv=None) -> None:
    """Entry point for ``mpipe``."""
    _run(mpipe_main, argv)


if __name__ == "__main__":
    main()
