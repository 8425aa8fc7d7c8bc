"""Interactive prompts for ``create-quapp``.

Keys are read one at a time by :mod:`quapp.create.keys` and the prompt is
redrawn with a Rich ``Live`` display, so Escape and Ctrl+C are seen the
moment they are pressed.  Either key cancels the session's
:class:`CancelToken` and raises :class:`SetupCancelled`.

When stdin is not a terminal (piped input, CI) the prompts fall back to
line-based Rich prompts; end of input counts as an empty answer.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from typing import NoReturn

import readchar
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from quapp.cancellation import CancelToken, SetupCancelled
from quapp.create.keys import default_key_reader
from quapp.utils import console

ENTER_KEYS = {readchar.key.ENTER, readchar.key.CR, readchar.key.LF}
BACKSPACE_KEYS = {readchar.key.BACKSPACE, "\x08", "\x7f"}

Choice = tuple[str, str]


class Prompter:
    """Asks the user questions on behalf of a session.

    Args:
        token: Cancellation token of the running session.
        read_key: Returns the next keypress. Defaults to
            :func:`~quapp.create.keys.default_key_reader`.
        interactive: Use keypress prompts. Defaults to ``sys.stdin.isatty()``.
    """

    def __init__(
        self,
        token: CancelToken,
        read_key: Callable[[], str] | None = None,
        interactive: bool | None = None,
    ) -> None:
        self.token = token
        self._read_key = read_key or default_key_reader()
        self.interactive = sys.stdin.isatty() if interactive is None else interactive

    # -- Public API --------------------------------------------------------

    def text(
        self,
        message: str,
        validate: Callable[[str], str | None] | None = None,
    ) -> str | None:
        """Ask for a line of text.

        Args:
            message: Question shown to the user.
            validate: Returns an error message for unacceptable input, or
                ``None`` to accept it.

        Returns:
            The trimmed answer, or ``None`` if it is empty.
        """
        self.token.check()
        if not self.interactive:
            return self._line_text(message, validate)

        buffer = ""
        error = ""
        with Live(
            self._text_view(message, buffer, error),
            console=console,
            transient=True,
            auto_refresh=False,
        ) as live:
            while True:
                key = self._next_key()
                if key in ENTER_KEYS:
                    error = (validate(buffer) if validate else None) or ""
                    if not error:
                        break
                elif key in BACKSPACE_KEYS:
                    buffer = buffer[:-1]
                    error = ""
                elif len(key) == 1 and key.isprintable():
                    buffer += key
                    error = ""
                live.update(self._text_view(message, buffer, error), refresh=True)

        answer = buffer.strip()
        self._echo(message, answer)
        return answer or None

    def select(self, message: str, choices: Sequence[Choice]) -> str | None:
        """Pick one of ``(title, value)`` *choices* with the arrow keys.

        Returns:
            The chosen value, or ``None`` if there is nothing to choose from.
        """
        self.token.check()
        if not choices:
            return None
        if not self.interactive:
            return self._line_select(message, choices)

        index = 0
        with Live(
            self._select_view(message, choices, index),
            console=console,
            transient=True,
            auto_refresh=False,
        ) as live:
            while True:
                key = self._next_key()
                if key == readchar.key.UP:
                    index = (index - 1) % len(choices)
                elif key == readchar.key.DOWN:
                    index = (index + 1) % len(choices)
                elif key in ENTER_KEYS:
                    break
                live.update(self._select_view(message, choices, index), refresh=True)

        title, value = choices[index]
        self._echo(message, title)
        return value

    def confirm(self, message: str, default: bool = False) -> bool | None:
        """Ask a yes/no question.

        Returns:
            The answer, or ``None`` if input ended before one was given.
        """
        self.token.check()
        if not self.interactive:
            try:
                return Confirm.ask(message, default=default, console=console)
            except EOFError:
                return None
            except KeyboardInterrupt:
                self._cancel("Ctrl+C")

        hint = "Y/n" if default else "y/N"
        console.print(Text.assemble(("? ", "green"), (message, "bold"), f" ({hint}) "), end="")
        while True:
            key = self._next_key()
            if key in ("y", "Y"):
                answer = True
                break
            if key in ("n", "N"):
                answer = False
                break
            if key in ENTER_KEYS:
                answer = default
                break
        console.print("yes" if answer else "no", style="cyan")
        return answer

    # -- Keys ----------------------------------------------------------------

    def _next_key(self) -> str:
        try:
            key = self._read_key()
        except KeyboardInterrupt:
            self._cancel("Ctrl+C")
        if key == readchar.key.CTRL_C:
            self._cancel("Ctrl+C")
        if key == readchar.key.ESC:
            self._cancel("Escape")
        return key

    def _cancel(self, reason: str) -> NoReturn:
        self.token.cancel(reason)
        raise SetupCancelled(reason)

    # -- Line-based fallback -------------------------------------------------

    def _line_text(
        self,
        message: str,
        validate: Callable[[str], str | None] | None,
    ) -> str | None:
        while True:
            try:
                answer = Prompt.ask(message, console=console, default="", show_default=False)
            except EOFError:
                return None
            except KeyboardInterrupt:
                self._cancel("Ctrl+C")
            problem = validate(answer) if validate else None
            if not problem:
                return answer.strip() or None
            console.print(Text(problem, style="red"))

    def _line_select(self, message: str, choices: Sequence[Choice]) -> str | None:
        for number, (title, _) in enumerate(choices, 1):
            console.print(f"  {number}) {title}")
        numbers = [str(number) for number in range(1, len(choices) + 1)]
        try:
            picked = Prompt.ask(message, console=console, choices=numbers)
        except EOFError:
            return None
        except KeyboardInterrupt:
            self._cancel("Ctrl+C")
        return choices[int(picked) - 1][1]

    # -- Rendering -----------------------------------------------------------

    @staticmethod
    def _echo(message: str, answer: str) -> None:
        console.print(Text.assemble(("? ", "green"), (message, "bold"), " ", (answer, "cyan")))

    @staticmethod
    def _text_view(message: str, buffer: str, error: str) -> Text:
        view = Text.assemble(("? ", "green"), (message, "bold"), " › ", buffer, ("▌", "dim"))
        if error:
            view.append(f"\n  {error}", style="red")
        return view

    @staticmethod
    def _select_view(message: str, choices: Sequence[Choice], index: int) -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(justify="left")
        for position, (title, _) in enumerate(choices):
            if position == index:
                table.add_row("▶", Text(title, style="bold cyan"))
            else:
                table.add_row(" ", Text(title))
        table.add_row("", "")
        table.add_row("", Text("Use ↑/↓ to navigate, Enter to select, Esc to cancel", style="dim"))
        return Panel(table, title=Text(message, style="bold"), border_style="cyan", padding=(1, 2))
