"""``create-quapp``: interactive project creation.

Sequence of one session:

1. Resolve the project name (argument or prompt).
2. Resolve the template (``--template`` or framework + variant prompts).
3. Fetch the template into ``./<project-name>``.
4. Rename the package in ``package.json``.
5. Optionally ``git init``.
6. Optionally ``npm install``.
7. Print the next steps.

Escape or Ctrl+C at any point ends the session with exit code 0.  Files
already written stay on disk.

Usage::

    create-quapp my-app --template react-ts --git --install
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import BaseModel, Field
from rich.markup import escape

from quapp import __version__
from quapp.cancellation import CancelToken, SetupCancelled, capture_interrupts
from quapp.create.environment import git_available, init_git, install_dependencies
from quapp.create.materializer import (
    FetchError,
    ManifestError,
    TemplateFetcher,
    patch_manifest,
)
from quapp.create.prompts import Prompter
from quapp.create.templates import (
    FRAMEWORK_TITLES,
    framework_choices,
    framework_for,
    is_known_template,
    resolve_template_id,
    variant_choices,
)
from quapp.utils import (
    console,
    print_banner,
    print_error,
    print_info,
    print_success,
    print_warning,
    set_color,
)

# Lets buffered terminal output drain before the process exits.
FLUSH_DELAY = 0.1


class SessionOptions(BaseModel):
    """Command-line options of one ``create-quapp`` run."""

    project_name: str | None = Field(default=None, description="Positional project name")
    template: str | None = Field(default=None, description="Template variant from --template")
    force: bool = Field(default=False, description="Overwrite a non-empty target directory")
    color: bool = Field(default=True)
    git: bool = Field(default=False, description="Run git init without asking")
    install: bool = Field(default=False, description="Install dependencies without asking")


def _validate_project_name(name: str) -> str | None:
    return "Project name is required" if not name.strip() else None


class CreateSession:
    """Drives one project-creation session.

    Attributes:
        options: Parsed command-line options.
        prompter: Asks the interactive questions.
        token: Cancellation token checked before every step.
        fetcher: Materialises the template.
        cwd: Directory the project folder is created in.
    """

    def __init__(
        self,
        options: SessionOptions,
        prompter: Prompter,
        token: CancelToken,
        fetcher: TemplateFetcher | None = None,
        cwd: str | Path | None = None,
    ) -> None:
        self.options = options
        self.prompter = prompter
        self.token = token
        self.fetcher = fetcher or TemplateFetcher()
        self.cwd = Path(cwd) if cwd else Path.cwd()

    async def run(self) -> int:
        """Run the session and return the process exit code.

        Raises:
            SetupCancelled: If the user cancels.
        """
        name = self.resolve_project_name()
        if name is None:
            print_error("  Project name is required. Exiting...")
            return 0

        variant = self.resolve_template()
        if variant is None:
            print_error("\n  Setup canceled.\n")
            return 0

        self.token.check()
        console.print()
        print_success("  Creating a new Quapp project...\n")

        project_dir = self.cwd / name
        try:
            await self.fetcher.fetch(
                resolve_template_id(variant),
                project_dir,
                cache=False,
                force=self.options.force,
            )
        except FetchError as exc:
            print_error(f"  Error creating project: {exc}")
            return 1

        try:
            patch_manifest(project_dir, name)
        except ManifestError as exc:
            print_error(f"  {exc}")
            return 1

        await self.setup_git(project_dir)
        installed = await self.setup_dependencies(project_dir)

        self.print_next_steps(name, installed)
        await asyncio.sleep(FLUSH_DELAY)
        return 0

    # -- Steps -------------------------------------------------------------

    def resolve_project_name(self) -> str | None:
        """Return the project name from the arguments or a prompt."""
        provided = (self.options.project_name or "").strip()
        if provided:
            return provided

        print_banner("Welcome to Quapp Setup!")
        return self.prompter.text("Enter Project Name:", validate=_validate_project_name)

    def resolve_template(self) -> str | None:
        """Return the template variant from ``--template`` or the prompts."""
        if is_known_template(self.options.template):
            framework = FRAMEWORK_TITLES[framework_for(self.options.template)]
            print_info(f"  Using the {framework} template '{self.options.template}'.")
            return self.options.template
        if self.options.template:
            print_warning(f"  Unknown template '{self.options.template}'.")

        console.print()
        framework = self.prompter.select("Choose a framework:", framework_choices())
        if framework is None:
            return None

        console.print()
        return self.prompter.select(
            f"Choose a {framework} template:", variant_choices(framework)
        )

    async def setup_git(self, project_dir: Path) -> bool:
        """Initialise a git repository when requested or confirmed."""
        self.token.check()
        wanted = self.options.git
        if not wanted:
            if not git_available():
                print_warning("  Git is not installed. Skipping Git init.")
                return False
            wanted = bool(self.prompter.confirm("Do you want to initialize a Git repository?"))
        if not wanted:
            return False
        return await init_git(project_dir)

    async def setup_dependencies(self, project_dir: Path) -> bool:
        """Install dependencies when requested or confirmed."""
        self.token.check()
        wanted = self.options.install
        if not wanted:
            wanted = bool(self.prompter.confirm("Do you want to install dependencies?"))
        if not wanted:
            return False
        return await install_dependencies(project_dir)

    def print_next_steps(self, name: str, installed: bool) -> None:
        console.print("\n")
        print_warning("Now run the following commands to start your project:\n")
        console.print(f"[bold blue]  cd {escape(name)}[/bold blue]")
        if not installed:
            console.print("[bold blue]  npm install[/bold blue]")
        console.print("[bold blue]  npm run dev\n[/bold blue]")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> SessionOptions:
    parser = argparse.ArgumentParser(
        prog="create-quapp",
        description="Create a new Quapp project from a template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-quapp\n"
            "  create-quapp my-app --template react-ts\n"
            "  create-quapp my-app --template vue --git --install\n"
        ),
    )
    parser.add_argument("project_name", nargs="?", default=None, help="Project directory name")
    parser.add_argument("--template", default=None, help="Template variant, e.g. react-ts")
    parser.add_argument("--force", action="store_true", help="Overwrite a non-empty directory")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument("--git", action="store_true", help="Initialise a git repository")
    parser.add_argument("--install", action="store_true", help="Install dependencies")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    return SessionOptions(
        project_name=args.project_name,
        template=args.template,
        force=args.force,
        color=not args.no_color,
        git=args.git,
        install=args.install,
    )


def run_session(
    options: SessionOptions,
    prompter: Prompter,
    token: CancelToken,
    fetcher: TemplateFetcher | None = None,
    cwd: str | Path | None = None,
) -> int:
    """Run a session with SIGINT routed into *token*; return the exit code."""
    session = CreateSession(options, prompter, token, fetcher=fetcher, cwd=cwd)
    try:
        with capture_interrupts(token):
            return asyncio.run(session.run())
    except (SetupCancelled, KeyboardInterrupt) as exc:
        reason = getattr(exc, "reason", "") or token.reason or "Ctrl+C"
        print_error(f"\n  Setup canceled ({reason}).\n")
        return 0
    except Exception as exc:
        print_error(f"  Unexpected error: {exc}")
        return 1


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``create-quapp``."""
    options = parse_args(argv)
    set_color(options.color)

    token = CancelToken()
    sys.exit(run_session(options, Prompter(token), token))
