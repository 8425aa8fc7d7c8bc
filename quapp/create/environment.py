"""Optional environment setup for a freshly created project.

Both steps are best effort: a missing tool or a failing command is reported
as a warning and the caller carries on.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from quapp.utils import print_info, print_warning, run_command

EXTRA_PACKAGE = "qrcode-terminal"


def git_available() -> bool:
    """Return ``True`` if a ``git`` executable is on ``PATH``."""
    return shutil.which("git") is not None


def _npm_command() -> str:
    # npm ships as npm.cmd on Windows; which() resolves the right one.
    return shutil.which("npm") or "npm"


async def init_git(project_dir: str | Path) -> bool:
    """Run ``git init`` inside *project_dir*.

    Returns:
        ``True`` if the repository was initialised.
    """
    try:
        returncode, _, stderr = await run_command(["git", "init"], cwd=project_dir)
    except OSError:
        returncode, stderr = -1, ""

    if returncode != 0:
        print_warning("  Git not found. Skipping Git init.")
        if stderr:
            print_warning(f"  {stderr.splitlines()[0]}")
        return False

    print_info("  Initialized empty Git repository.")
    return True


async def install_dependencies(project_dir: str | Path) -> bool:
    """Install the project's dependencies with npm.

    ``npm install`` runs with the console attached so its progress is
    visible; the extra runtime package is then added silently.

    Returns:
        ``True`` if both installs succeeded.
    """
    npm = _npm_command()
    print_info("  Installing dependencies...\n")
    try:
        returncode, _, _ = await run_command([npm, "install"], cwd=project_dir, capture=False)
        if returncode == 0:
            returncode, _, _ = await run_command(
                [npm, "install", EXTRA_PACKAGE], cwd=project_dir
            )
    except OSError:
        returncode = -1

    if returncode != 0:
        print_warning(
            "  NPM not found or installation failed. Please install dependencies manually."
        )
        return False
    return True
