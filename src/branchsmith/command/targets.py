"""Targets command - lists and edits the merge target branches."""

from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from branchsmith.core.errors import ConfigurationError
from branchsmith.core.log import logger


class TargetsCommand(BaseModel):
    """List the configured merge targets, or add or remove one.

    Changes are written to ./branchsmith.yaml and apply to any
    workflow already waiting on a prompt.
    """

    add: str | None = Field(
        default=None,
        description="Name of a target branch to add",
    )
    remove: str | None = Field(
        default=None,
        description="Name of a target branch to remove",
    )
    description: str = Field(
        default="",
        description="Description stored with --add",
    )

    async def run_workflow(self, state: "State") -> int:
        from branchsmith.core.settings_store import SettingsStore

        console = Console()
        store = SettingsStore(state.reload_config)
        try:
            if self.add:
                store.add_target(self.add, self.description)
                console.print(f"[green]Added target branch '{self.add}'[/]")
            if self.remove:
                store.remove_target(self.remove)
                console.print(
                    f"[green]Removed target branch '{self.remove}'[/]"
                )
        except ConfigurationError as e:
            logger.error("Could not update target branches", error=str(e))
            console.print(f"[bold red]{e}[/]")
            return 1

        table = Table(title="Target branches")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        for target in store.targets():
            table.add_row(target.name, target.description)
        console.print(table)
        return 0
