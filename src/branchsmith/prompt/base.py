"""The interface workflows use to talk to the user."""

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

# Returns None when the value is acceptable, else the message to show
Validator = Callable[[str], str | None]


@runtime_checkable
class Prompter(Protocol):
    """Asynchronous user interaction.

    Every question may come back as None, which always means the user
    cancelled.
    """

    async def select(
        self, options: Sequence[str], prompt: str
    ) -> str | None:
        """Pick one of options."""
        ...

    async def input(
        self,
        prompt: str,
        placeholder: str = "",
        validator: Validator | None = None,
    ) -> str | None:
        """Free text, re-asked until validator accepts it."""
        ...

    async def confirm(
        self, message: str, options: Sequence[str]
    ) -> str | None:
        """Ask a question answered by one of options."""
        ...

    async def notify(self, message: str, level: str = "info") -> None:
        """Show a message that needs no answer."""
        ...
