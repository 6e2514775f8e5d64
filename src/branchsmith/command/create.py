"""Create command - composes and creates a feature branch."""

from pydantic import BaseModel

from branchsmith.core.log import logger


class CreateCommand(BaseModel):
    """Create a feature branch named prefix/date/description_author.

    Prompts for the prefix, the base branch and a short description.
    The author comes from branch.custom_git_name or git's user.name.
    """

    async def run_workflow(self, state: "State") -> int:
        from branchsmith.workflow.deps import build_deps
        from branchsmith.workflow.orchestrator import BranchCreator

        result = await BranchCreator(build_deps(state)).run()
        logger.debug("Create command finished", status=result.status.value)
        return result.exit_code
