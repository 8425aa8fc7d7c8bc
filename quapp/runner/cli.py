"""``quapp`` command dispatcher.

Each subcommand runs as its own Python process with the console attached;
the dispatcher exits with the child's exit code.
"""

from __future__ import annotations

import asyncio
import sys

from quapp import __version__
from quapp.utils import console, run_command

SUBCOMMANDS: dict[str, str] = {
    "build": "quapp.runner.build",
    "serve": "quapp.runner.server",
}

USAGE = """
[bold blue]Quapp CLI[/bold blue]

Usage:
  quapp build       Run production build and compress to dist.qpp
  quapp serve       Start local server for testing your app

Options:
  -h, --help        Show this help message
  --version         Show the version and exit

Examples:
  quapp build
  quapp serve
"""


async def run_script(module: str) -> int:
    """Run ``python -m <module>`` with inherited streams and return its exit code."""
    returncode, _, _ = await run_command([sys.executable, "-m", module], capture=False)
    return returncode


def print_usage() -> None:
    console.print(USAGE)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``quapp``."""
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else None

    if command == "--version":
        console.print(f"quapp {__version__}")
        sys.exit(0)

    module = SUBCOMMANDS.get(command or "")
    if module is None:
        print_usage()
        sys.exit(0)

    try:
        exit_code = asyncio.run(run_script(module))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
