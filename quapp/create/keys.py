"""Keypress reading for the interactive prompts.

On Windows ``readchar.readkey`` is used as is.  On POSIX terminals a lone
Escape looks like the first byte of an arrow-key sequence, and
``readchar.readkey`` blocks until another byte arrives.  :class:`KeyReader`
reads the terminal itself instead: after an ``ESC`` byte it waits
:data:`ESCAPE_DELAY` seconds for the rest of a sequence and reports a lone
``readchar.key.ESC`` when nothing follows.

Keys are returned in the ``readchar.key`` vocabulary (``UP`` is
``"\\x1b[A"``, ``ENTER`` is ``"\\n"`` and so on).
"""

from __future__ import annotations

import codecs
import os
import select
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import readchar

if sys.platform != "win32":
    import termios

ESCAPE_DELAY = 0.05

# Application cursor mode sends SS3 arrows ("ESC O A") instead of CSI.
_SS3_ALIASES = {
    "\x1bOA": readchar.key.UP,
    "\x1bOB": readchar.key.DOWN,
    "\x1bOC": readchar.key.RIGHT,
    "\x1bOD": readchar.key.LEFT,
}


def _is_final(char: str) -> bool:
    return 0x40 <= ord(char) <= 0x7E


@contextmanager
def _cbreak(fd: int) -> Iterator[None]:
    """Turn off line buffering and echo on *fd* while reading one key.

    Signals stay enabled so Ctrl+C still raises ``KeyboardInterrupt``.
    Pending input is kept.  Non-terminals are read as they are.
    """
    try:
        saved = termios.tcgetattr(fd)
    except termios.error:
        saved = None

    if saved is not None:
        mode = termios.tcgetattr(fd)
        mode[3] &= ~(termios.ICANON | termios.ECHO)
        mode[6][termios.VMIN] = 1
        mode[6][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSANOW, mode)
    try:
        yield
    finally:
        if saved is not None:
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)


class KeyReader:
    """Reads one keypress at a time from a POSIX terminal.

    Args:
        fd: File descriptor to read. Defaults to ``sys.stdin`` at read time.
        escape_delay: Seconds to wait for the rest of an escape sequence.
    """

    def __init__(self, fd: int | None = None, escape_delay: float = ESCAPE_DELAY) -> None:
        self._fd = fd
        self.escape_delay = escape_delay

    @property
    def fd(self) -> int:
        return sys.stdin.fileno() if self._fd is None else self._fd

    def read_key(self) -> str:
        """Block until a key is pressed and return it.

        Raises:
            EOFError: The terminal was closed.
        """
        fd = self.fd
        with _cbreak(fd):
            first = self._read_char(fd)
            if first != readchar.key.ESC:
                return first
            if not self._pending(fd):
                return readchar.key.ESC
            key = first + self._read_sequence(fd)
        return _SS3_ALIASES.get(key, key)

    def _read_sequence(self, fd: int) -> str:
        second = self._read_char(fd)
        if second not in ("[", "O"):
            # Alt+key
            return second

        sequence = second
        while self._pending(fd):
            char = self._read_char(fd)
            sequence += char
            if _is_final(char):
                break
        return sequence

    def _pending(self, fd: int) -> bool:
        ready, _, _ = select.select([fd], [], [], self.escape_delay)
        return bool(ready)

    @staticmethod
    def _read_char(fd: int) -> str:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            byte = os.read(fd, 1)
            if not byte:
                raise EOFError("terminal closed")
            char = decoder.decode(byte)
            if char:
                return char


def default_key_reader() -> Callable[[], str]:
    """Return the key reader for the current platform."""
    if sys.platform == "win32":
        return readchar.readkey
    return KeyReader().read_key
