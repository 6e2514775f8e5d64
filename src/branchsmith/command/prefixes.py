"""Prefixes command - lists and edits the feature-branch prefixes."""

from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from branchsmith.core.errors import ConfigurationError
from branchsmith.core.log import logger


class PrefixesCommand(BaseModel):
    """List the configured branch prefixes, or add, remove or pick the
    default one."""

    add: str | None = Field(
        default=None,
        description="Prefix to add (letters, digits, '_' or '-')",
    )
    description: str = Field(
        default="",
        description="Description stored with --add",
    )
    default: bool = Field(
        default=False,
        description="Make the prefix given with --add the default",
    )
    remove: str | None = Field(
        default=None,
        description="Prefix to remove",
    )
    set_default: str | None = Field(
        default=None,
        alias="set-default",
        description="Prefix to make the default",
    )

    model_config = {"populate_by_name": True}

    async def run_workflow(self, state: "State") -> int:
        from branchsmith.core.settings_store import SettingsStore

        console = Console()
        store = SettingsStore(state.reload_config)
        try:
            if self.add:
                store.add_prefix(self.add, self.description, self.default)
                console.print(f"[green]Added prefix '{self.add}'[/]")
            if self.remove:
                store.remove_prefix(self.remove)
                console.print(f"[green]Removed prefix '{self.remove}'[/]")
            if self.set_default:
                store.set_default_prefix(self.set_default)
                console.print(
                    f"[green]Default prefix is now '{self.set_default}'[/]"
                )
        except ConfigurationError as e:
            logger.error("Could not update branch prefixes", error=str(e))
            console.print(f"[bold red]{e}[/]")
            return 1

        table = Table(title="Branch prefixes")
        table.add_column("Prefix", style="cyan")
        table.add_column("Description")
        table.add_column("Default", justify="center")
        for prefix in store.prefixes():
            table.add_row(
                prefix.prefix,
                prefix.description,
                "*" if prefix.is_default else "",
            )
        console.print(table)
        return 0
