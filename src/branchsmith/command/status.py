"""Status command - shows the repository state the workflows act on."""

from pydantic import BaseModel
from rich.console import Console

from branchsmith.core.errors import BranchsmithError
from branchsmith.core.log import logger


class StatusCommand(BaseModel):
    """Show the current branch, its upstream, uncommitted changes and
    unresolved conflicts."""

    async def run_workflow(self, state: "State") -> int:
        from branchsmith.branch.naming import is_feature_branch
        from branchsmith.workflow.deps import build_deps

        console = Console()
        deps = build_deps(state)
        if not deps.inspector.is_repository():
            console.print("[bold red]Not inside a git repository[/]")
            return 1

        try:
            summary = deps.inspector.status_summary()
        except BranchsmithError as e:
            logger.error("Could not read repository status", error=str(e))
            console.print(f"[bold red]{e}[/]")
            return 1

        prefixes = state.config.branch.prefix_names()
        branch = summary.branch or "(detached HEAD)"
        kind = (
            "feature branch"
            if summary.branch and is_feature_branch(summary.branch, prefixes)
            else "not a feature branch"
        )
        console.print(f"Branch:    [cyan]{branch}[/] ({kind})")
        console.print(f"Upstream:  {summary.upstream or '-'}")
        console.print(f"Remotes:   {', '.join(summary.remotes) or '-'}")
        console.print(
            f"Changes:   {'uncommitted changes' if summary.dirty else 'clean'}"
        )
        if summary.conflicts:
            console.print("[yellow]Unresolved conflicts:[/]")
            for path in summary.conflicted_files:
                console.print(f"  {path}")
        return 0
