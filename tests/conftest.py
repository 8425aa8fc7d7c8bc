"""Shared pytest fixtures for the Quapp test suite.

Provides reusable fixtures for:
- Temporary project directories with a generated ``package.json``
- GitHub-style template archives
- Scripted keypresses for the prompt adapter
- Fake template fetchers and prompters for session tests
- Mock subprocess helpers
"""

from __future__ import annotations

import asyncio
import io
import json
import tarfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from quapp.cancellation import CancelToken, SetupCancelled


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Temporary directory for generated projects (auto-cleanup)."""
    project_dir = tmp_path / "test-project"
    project_dir.mkdir()
    yield project_dir


@pytest.fixture
def sample_manifest() -> dict[str, Any]:
    """The ``package.json`` shipped by the react-ts template."""
    return {
        "name": "quapp-react-ts",
        "private": True,
        "version": "0.0.0",
        "type": "module",
        "scripts": {
            "dev": "quapp serve",
            "build": "tsc -b && vite build",
            "preview": "vite preview",
        },
        "dependencies": {"react": "^19.0.0", "react-dom": "^19.0.0"},
        "devDependencies": {"quapp": "^1.2.0", "typescript": "~5.6.2", "vite": "^6.0.0"},
    }


@pytest.fixture
def vite_project(tmp_project_dir: Path) -> Path:
    """A project directory with a (fake) local ``vite`` binary installed."""
    bin_dir = tmp_project_dir / "node_modules" / ".bin"
    bin_dir.mkdir(parents=True)
    for name in ("vite", "vite.cmd"):
        binary = bin_dir / name
        binary.write_text("#!/bin/sh\n", encoding="utf-8")
        binary.chmod(0o755)
    return tmp_project_dir


# ---------------------------------------------------------------------------
# Template archives
# ---------------------------------------------------------------------------

def _add_file(tar: tarfile.TarFile, name: str, content: bytes, mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(content)
    info.mode = mode
    tar.addfile(info, io.BytesIO(content))


def _add_dir(tar: tarfile.TarFile, name: str) -> None:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tar.addfile(info)


@pytest.fixture
def make_template_archive() -> Callable[..., bytes]:
    """Factory building a GitHub-style ``.tar.gz`` in memory.

    Usage:
        def test_extract(make_template_archive):
            archive = make_template_archive({"packages/templates/react/index.html": "<html>"})
    """

    def factory(files: dict[str, str], prefix: str = "Quapp-HEAD") -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            _add_dir(tar, f"{prefix}/")
            seen: set[str] = set()
            for name, content in files.items():
                parts = name.split("/")[:-1]
                for depth in range(1, len(parts) + 1):
                    directory = "/".join(parts[:depth])
                    if directory not in seen:
                        seen.add(directory)
                        _add_dir(tar, f"{prefix}/{directory}/")
                _add_file(tar, f"{prefix}/{name}", content.encode("utf-8"))
        return buffer.getvalue()

    return factory


@pytest.fixture
def react_template_files(sample_manifest: dict[str, Any]) -> dict[str, str]:
    """Files of a small repository holding two templates."""
    return {
        "README.md": "# Quapp\n",
        "packages/templates/react-ts/package.json": json.dumps(sample_manifest, indent=2),
        "packages/templates/react-ts/index.html": "<!doctype html>\n",
        "packages/templates/react-ts/src/main.tsx": "console.log('hi')\n",
        "packages/templates/react/package.json": json.dumps({"name": "quapp-react"}),
    }


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

@pytest.fixture
def scripted_keys() -> Callable[[Iterable[str]], Callable[[], str]]:
    """Factory returning a ``read_key`` callable that replays *keys*.

    Running out of keys fails the test instead of blocking.
    """

    def factory(keys: Iterable[str]) -> Callable[[], str]:
        remaining = list(keys)

        def read_key() -> str:
            if not remaining:
                raise AssertionError("prompt asked for more keys than scripted")
            return remaining.pop(0)

        return read_key

    return factory


class FakePrompter:
    """Prompter stand-in answering from a script.

    ``answers`` maps a prompt kind (``text``, ``select``, ``confirm``) to a
    list of answers consumed in order.  An answer of ``SetupCancelled`` raises
    it, mimicking Escape.
    """

    def __init__(self, token: CancelToken, **answers: list[Any]) -> None:
        self.token = token
        self.answers = {kind: list(values) for kind, values in answers.items()}
        self.asked: list[tuple[str, str]] = []

    def _answer(self, kind: str, message: str) -> Any:
        self.token.check()
        self.asked.append((kind, message))
        values = self.answers.get(kind)
        if not values:
            raise AssertionError(f"unexpected {kind} prompt: {message}")
        value = values.pop(0)
        if value is SetupCancelled:
            self.token.cancel("Escape")
            raise SetupCancelled("Escape")
        return value

    def text(self, message: str, validate: Any = None) -> str | None:
        return self._answer("text", message)

    def select(self, message: str, choices: Any) -> str | None:
        return self._answer("select", message)

    def confirm(self, message: str, default: bool = False) -> bool | None:
        return self._answer("confirm", message)


@pytest.fixture
def cancel_token() -> CancelToken:
    return CancelToken()


@pytest.fixture
def fake_prompter(cancel_token: CancelToken) -> Callable[..., FakePrompter]:
    """Factory for :class:`FakePrompter` bound to the test's token."""

    def factory(**answers: list[Any]) -> FakePrompter:
        return FakePrompter(cancel_token, **answers)

    return factory


# ---------------------------------------------------------------------------
# Fetchers
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_fetcher(sample_manifest: dict[str, Any]) -> MagicMock:
    """A fetcher whose ``fetch`` writes a template with ``package.json``.

    ``fake_fetcher.fetch.await_args`` records the call for assertions.
    """

    async def _fetch(template_id: str, dest: Path, *, cache: bool = False, force: bool = False):
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        (dest / "package.json").write_text(json.dumps(sample_manifest, indent=2), encoding="utf-8")
        (dest / "index.html").write_text("<!doctype html>\n", encoding="utf-8")
        return dest

    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(side_effect=_fetch)
    return fetcher


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


@pytest.fixture
def mock_server_process():
    """Factory for a fake long-running server process with streamed output.

    ``stdout_lines`` are served by ``process.stdout.readline`` followed by EOF;
    ``wait`` resolves to *returncode* after *runtime* seconds.
    """

    def factory(
        stdout_lines: list[str] | None = None,
        returncode: int = 0,
        runtime: float = 0.01,
    ) -> MagicMock:
        def _reader(lines: list[str]) -> MagicMock:
            chunks = [line.encode("utf-8") for line in lines] + [b""]
            reader = MagicMock()
            reader.readline = AsyncMock(side_effect=chunks)
            return reader

        process = MagicMock()
        process.stdout = _reader(stdout_lines or [])
        process.stderr = _reader([])
        process.returncode = None

        async def _wait() -> int:
            await asyncio.sleep(runtime)
            process.returncode = returncode
            return returncode

        process.wait = AsyncMock(side_effect=_wait)
        return process

    return factory
