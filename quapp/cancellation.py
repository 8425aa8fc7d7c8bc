"""Cooperative cancellation for interactive sessions.

A :class:`CancelToken` is created once per ``create-quapp`` run and handed to
every step that may wait on the user or on a child process.  The prompt
adapter cancels it when Escape or Ctrl+C is pressed inside a prompt;
:func:`capture_interrupts` cancels it when SIGINT arrives anywhere else.
Steps call :meth:`CancelToken.check` before starting work.
"""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager

from quapp.utils import console


class SetupCancelled(Exception):
    """Raised when the user cancels the session (Escape or Ctrl+C)."""

    def __init__(self, reason: str = ""):
        self.reason = reason
        if reason:
            super().__init__(f"Setup canceled ({reason}).")
        else:
            super().__init__("Setup canceled.")


class CancelToken:
    """One-shot cancellation flag shared by the steps of a session."""

    def __init__(self) -> None:
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str) -> None:
        """Mark the token cancelled.  The first reason wins."""
        if self._reason is None:
            self._reason = reason

    def check(self) -> None:
        """Raise :class:`SetupCancelled` if the token has been cancelled."""
        if self._reason is not None:
            raise SetupCancelled(self._reason)


@contextmanager
def capture_interrupts(token: CancelToken) -> Iterator[CancelToken]:
    """Route SIGINT into *token* for the duration of the block.

    The handler cancels the token and raises :class:`SetupCancelled` so that a
    blocking wait is interrupted straight away.  The previous handler and the
    terminal cursor are restored on exit, however the block ends.
    """

    def _on_sigint(signum, frame):  # noqa: ARG001
        token.cancel("Ctrl+C")
        raise SetupCancelled("Ctrl+C")

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
        console.show_cursor(True)
