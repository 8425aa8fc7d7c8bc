"""``quapp serve``: Vite dev server exposed on the LAN.

Starts the project's ``vite`` binary bound to the machine's LAN address,
prints the URL with a scannable QR code once the server reports it is
ready, and moves to the next port when the server exits with an error.

Usage::

    python -m quapp.runner.server
"""

from __future__ import annotations

import asyncio
import io
import ipaddress
import re
import socket
import sys
import webbrowser
from collections.abc import Callable, Mapping, Sequence
from contextlib import suppress
from pathlib import Path
from typing import Any, TextIO

import psutil
import qrcode

from quapp.config import QuappConfig, ServerConfig, load_config
from quapp.utils import console, print_error, print_warning, strip_ansi

LOOPBACK_HOST = "localhost"
MAX_PORT_ATTEMPTS = 10

# Vite prints "VITE vX ready in N ms" followed by "➜  Local:   http://...".
READY_PATTERN = re.compile(r"ready in|Local:\s+https?://", re.IGNORECASE)
READY_TIMEOUT = 10.0


class DevServerError(Exception):
    """Raised when the dev server cannot be started at all."""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def resolve_host(
    network: str,
    interfaces: Mapping[str, Sequence[Any]] | None = None,
) -> str:
    """Return the address the dev server should bind to.

    For ``"private"`` this is the first non-loopback IPv4 address among the
    network interfaces; every other value (and a machine with no such
    address) resolves to ``localhost``.

    Args:
        network: The ``server.network`` setting.
        interfaces: ``psutil.net_if_addrs()``-shaped mapping. Read from the
            system when omitted.
    """
    if network != "private":
        return LOOPBACK_HOST

    if interfaces is None:
        interfaces = psutil.net_if_addrs()
    for addresses in interfaces.values():
        for address in addresses:
            if address.family != socket.AF_INET:
                continue
            if ipaddress.ip_address(address.address).is_loopback:
                continue
            return address.address
    return LOOPBACK_HOST


def build_url(server: ServerConfig, host: str, port: int) -> str:
    protocol = "https" if server.https else "http"
    return f"{protocol}://{host}:{port}"


def dev_server_args(server: ServerConfig, host: str, port: int) -> list[str]:
    """Command-line flags for the dev server."""
    args = ["--host", host, "--port", str(port)]
    if server.strict_port or not server.auto_retry:
        args.append("--strictPort")
    if server.https:
        args.append("--https")
    return args


def dev_server_binary(root: str | Path) -> Path:
    """Path of the project-local ``vite`` executable."""
    name = "vite.cmd" if sys.platform == "win32" else "vite"
    return Path(root) / "node_modules" / ".bin" / name


def should_retry(exit_code: int, server: ServerConfig, attempt: int) -> bool:
    """Whether a failed launch on attempt *attempt* is retried on the next port."""
    return (
        exit_code != 0
        and server.fallback_port
        and server.auto_retry
        and attempt < MAX_PORT_ATTEMPTS
    )


def next_port(port: int) -> int:
    return port + 1


def render_qr(data: str) -> str:
    """Render *data* as a compact QR code made of terminal block characters."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(data)
    qr.make(fit=True)
    buffer = io.StringIO()
    qr.print_ascii(out=buffer, invert=True)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Launcher
# ---------------------------------------------------------------------------


class DevServerLauncher:
    """Runs the dev server, retrying on the next port after a failed start.

    Args:
        config: Loaded Quapp configuration.
        root: Project directory. Defaults to the current working directory.
        host: Bind address. Resolved from ``config.server.network`` when omitted.
        open_browser: Called with the URL when ``openBrowser`` is set.
        render: Turns the URL into printable QR code text.
    """

    def __init__(
        self,
        config: QuappConfig,
        root: str | Path | None = None,
        host: str | None = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
        render: Callable[[str], str] = render_qr,
    ) -> None:
        self.server = config.server
        self.root = Path(root) if root else Path.cwd()
        self.binary = dev_server_binary(self.root)
        self.host = host or resolve_host(self.server.network)
        self._open_browser = open_browser
        self._render = render

    async def run(self) -> int:
        """Launch the server until it exits cleanly or retries run out.

        Returns:
            ``0`` if the server exited cleanly, ``1`` otherwise.

        Raises:
            DevServerError: If the ``vite`` binary is missing.
        """
        if not self.binary.exists():
            raise DevServerError("vite binary not found. Try running `npm install vite`.")

        port = self.server.port
        attempt = 0
        while True:
            exit_code = await self.launch(port)
            if exit_code == 0:
                return 0
            if not should_retry(exit_code, self.server, attempt):
                print_error(f"Vite exited with code {exit_code}")
                return 1
            print_warning(f"Port {port} in use. Trying port {next_port(port)}...")
            port = next_port(port)
            attempt += 1

    async def launch(self, port: int) -> int:
        """Run the dev server once on *port* and return its exit code."""
        url = build_url(self.server, self.host, port)
        cmd = [str(self.binary), *dev_server_args(self.server, self.host, port)]

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(self.root),
        )

        ready = asyncio.Event()
        announcer = asyncio.create_task(self._announce_when_ready(ready, url, process))
        try:
            await asyncio.gather(
                self._pump(process.stdout, sys.stdout, ready),
                self._pump(process.stderr, sys.stderr, ready),
            )
            return await process.wait()
        finally:
            announcer.cancel()
            with suppress(asyncio.CancelledError):
                await announcer

    def announce(self, url: str) -> None:
        """Print the LAN URL, the QR code and optionally open a browser."""
        console.print(f"\n🌍 Access your app from LAN at: [bold cyan]{url}[/bold cyan]")
        if self.server.qr:
            console.print("\n📱 Scan the QR code below:\n")
            console.out(self._render(url), highlight=False)
        if self.server.open_browser:
            try:
                self._open_browser(url)
            except webbrowser.Error as exc:
                print_warning(f"Could not open a browser: {exc}")

    async def _announce_when_ready(
        self,
        ready: asyncio.Event,
        url: str,
        process: asyncio.subprocess.Process,
    ) -> None:
        try:
            await asyncio.wait_for(ready.wait(), timeout=READY_TIMEOUT)
        except asyncio.TimeoutError:
            # No readiness line yet; announce anyway while the server is alive.
            if process.returncode is not None:
                return
        self.announce(url)

    @staticmethod
    async def _pump(
        reader: asyncio.StreamReader | None,
        stream: TextIO,
        ready: asyncio.Event,
    ) -> None:
        """Echo *reader* line by line to *stream*, flagging readiness lines."""
        if reader is None:
            return
        while True:
            line_bytes = await reader.readline()
            if not line_bytes:
                break
            line = line_bytes.decode("utf-8", errors="replace")
            stream.write(line)
            stream.flush()
            if READY_PATTERN.search(strip_ansi(line)):
                ready.set()


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point for ``python -m quapp.runner.server``."""
    config = load_config()
    launcher = DevServerLauncher(config)
    try:
        exit_code = asyncio.run(launcher.run())
    except DevServerError as exc:
        print_error(f"❌ {exc}")
        exit_code = 1
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
