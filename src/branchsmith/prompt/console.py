"""Terminal prompts rendered with rich."""

import asyncio
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from branchsmith.prompt.base import Validator

CANCEL_WORDS = frozenset({"q", "quit"})

_STYLES = {
    "info": "cyan",
    "success": "green",
    "warn": "yellow",
    "error": "bold red",
}


class ConsolePrompter:
    """Prompter reading from the terminal.

    Blank answers, 'q', Ctrl-C and end of input all cancel. Prompts
    block, so they run in a worker thread to keep the event loop free.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def select(self, options: Sequence[str], prompt: str) -> str | None:
        if not options:
            return None
        return await asyncio.to_thread(self._select, list(options), prompt)

    async def input(
        self,
        prompt: str,
        placeholder: str = "",
        validator: Validator | None = None,
    ) -> str | None:
        return await asyncio.to_thread(
            self._input, prompt, placeholder, validator
        )

    async def confirm(self, message: str, options: Sequence[str]) -> str | None:
        return await asyncio.to_thread(self._select, list(options), message)

    async def notify(self, message: str, level: str = "info") -> None:
        style = _STYLES.get(level, "")
        text = escape(message)
        self.console.print(f"[{style}]{text}[/]" if style else text)

    def _ask(self, text: str) -> str | None:
        try:
            answer = Prompt.ask(text, console=self.console)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None
        answer = (answer or "").strip()
        if not answer or answer.lower() in CANCEL_WORDS:
            return None
        return answer

    def _select(self, options: list[str], prompt: str) -> str | None:
        self.console.print(f"[bold]{escape(prompt)}[/]")
        for number, option in enumerate(options, start=1):
            self.console.print(f"  [cyan]{number}[/]) {escape(option)}")

        while True:
            answer = self._ask(f"Choose 1-{len(options)} (q to cancel)")
            if answer is None:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            if answer in options:
                return answer
            self.console.print("[yellow]Not a valid choice[/]")

    def _input(
        self,
        prompt: str,
        placeholder: str,
        validator: Validator | None,
    ) -> str | None:
        if placeholder:
            self.console.print(f"[dim]e.g. {escape(placeholder)}[/]")
        while True:
            answer = self._ask(f"[bold]{escape(prompt)}[/]")
            if answer is None:
                return None
            error = validator(answer) if validator else None
            if error is None:
                return answer
            self.console.print(f"[red]{escape(error)}[/]")
