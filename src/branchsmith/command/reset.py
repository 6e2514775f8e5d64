"""Reset command - drops project overrides of branch and merge settings."""

from pydantic import BaseModel, Field
from rich.console import Console

from branchsmith.core.log import logger

RESET = "Reset"
KEEP = "Keep"


class ResetCommand(BaseModel):
    """Remove the branch: and merge: sections from ./branchsmith.yaml so
    the user and package defaults apply again. Other sections of the
    file are kept."""

    yes: bool = Field(
        default=False,
        description="Reset without asking for confirmation",
    )

    async def run_workflow(self, state: "State") -> int:
        from branchsmith.core.settings_store import SettingsStore
        from branchsmith.prompt.console import ConsolePrompter

        console = Console()
        store = SettingsStore(state.reload_config)
        if not self.yes:
            choice = await ConsolePrompter(console).confirm(
                f"Reset branch and merge settings in {store.path}?",
                [RESET, KEEP],
            )
            if choice != RESET:
                logger.info("Reset declined")
                return 0

        store.reset()
        console.print("[green]Branch and merge settings reset to defaults[/]")
        return 0
