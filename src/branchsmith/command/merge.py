"""Merge command - merges the current feature branch into a target."""

from pydantic import BaseModel

from branchsmith.core.log import logger


class MergeCommand(BaseModel):
    """Merge the current feature branch into a configured target.

    Publishes the feature branch if needed, merges it into the chosen
    target (pulling the target first), walks through any conflicts,
    pushes the target and switches back to the feature branch.
    """

    async def run_workflow(self, state: "State") -> int:
        """Run the merge workflow.

        Args:
            state: State instance

        Returns:
            Exit code (0=completed or cancelled, 1=failed, 2=rejected)
        """
        from branchsmith.workflow.deps import build_deps
        from branchsmith.workflow.orchestrator import MergeOrchestrator

        result = await MergeOrchestrator(build_deps(state)).run()
        logger.debug("Merge command finished", status=result.status.value)
        return result.exit_code
