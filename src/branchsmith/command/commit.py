"""Commit command - commits all changes, then offers to merge."""

from pydantic import BaseModel

from branchsmith.core.log import logger


class CommitCommand(BaseModel):
    """Stage and commit every change with a prefixed message, then
    optionally continue straight into the merge workflow."""

    async def run_workflow(self, state: "State") -> int:
        from branchsmith.workflow.deps import build_deps
        from branchsmith.workflow.orchestrator import QuickCommit

        result = await QuickCommit(build_deps(state)).run()
        logger.debug("Commit command finished", status=result.status.value)
        return result.exit_code
