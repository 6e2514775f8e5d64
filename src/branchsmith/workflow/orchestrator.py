"""Workflow entry points: merge, create branch, commit-and-merge.

Each run turns exceptions from the graph into exactly one
WorkflowResult. Failures are logged at error and shown to the user;
cancellations are logged at info.
"""

from branchsmith.core.errors import (
    BranchsmithError,
    PreconditionFailed,
    RestoreFailed,
    UserCancelled,
    WorkflowBusy,
)
from branchsmith.core.log import logger
from branchsmith.core.result import WorkflowResult
from branchsmith.core.singleflight import SingleFlight, merge_guard
from branchsmith.workflow.deps import WorkflowDeps
from branchsmith.workflow.graph import create_graph, merge_graph
from branchsmith.workflow.nodes.create import SelectPrefix
from branchsmith.workflow.nodes.merge import (
    PrepareEnvironment,
    prompt_commit_message,
    restore_original_branch,
)
from branchsmith.workflow.state import CreateSession, MergePhase, MergeSession

CONTINUE_TO_MERGE = "Merge now"
SKIP_MERGE = "Not now"


async def _report(deps: WorkflowDeps, result: WorkflowResult) -> WorkflowResult:
    level = {
        "completed": "success",
        "cancelled": "info",
        "failed": "error",
        "rejected": "warn",
    }[result.status.value]
    if result.message:
        await deps.prompter.notify(result.message, level)
    return result


class MergeOrchestrator:
    """Runs the merge graph under the single-flight guard.

    The original branch is checked out again on success (by the graph)
    and on every failure once it is known (by this class).
    """

    def __init__(self, deps: WorkflowDeps, guard: SingleFlight = merge_guard):
        self.deps = deps
        self.guard = guard

    async def run(self) -> WorkflowResult:
        try:
            with self.guard.hold("merge"):
                return await self.run_held()
        except WorkflowBusy as e:
            return await _report(self.deps, WorkflowResult.rejected(str(e)))

    async def run_held(
        self, session: MergeSession | None = None
    ) -> WorkflowResult:
        """Run with the guard already held by the caller."""
        if session is None:
            session = MergeSession()
        with logger.span("merge workflow"):
            result = await self._execute(session)
        return await _report(self.deps, result)

    async def _execute(self, session: MergeSession) -> WorkflowResult:
        try:
            return await merge_graph().run(
                state=session, deps=self.deps, inputs=PrepareEnvironment()
            )
        except RestoreFailed as e:
            session.advance(MergePhase.FAILED)
            logger.error("Could not restore original branch", error=str(e))
            return WorkflowResult.failed(str(e), branch=session.target_branch)
        except UserCancelled as e:
            logger.info("Merge cancelled", reason=str(e))
            restore_error = self._rollback(session)
            session.advance(MergePhase.FAILED)
            if restore_error:
                return WorkflowResult.failed(f"{e}. {restore_error}")
            return WorkflowResult.cancelled(str(e))
        except PreconditionFailed as e:
            session.advance(MergePhase.FAILED)
            logger.error("Merge precondition failed", error=str(e))
            return WorkflowResult.failed(str(e))
        except BranchsmithError as e:
            logger.error(
                "Merge failed",
                error=str(e),
                phase=session.phase.value,
                target=session.target_branch,
            )
            restore_error = self._rollback(session)
            session.advance(MergePhase.FAILED)
            message = str(e)
            if restore_error:
                message = f"{message}. {restore_error}"
            return WorkflowResult.failed(message, branch=session.target_branch)

    def _rollback(self, session: MergeSession) -> RestoreFailed | None:
        """Return to the original branch; the failure, if any, is
        returned rather than raised."""
        if session.original_branch is None or session.leave_on_target:
            return None
        logger.info("Rolling back", branch=session.original_branch)
        if session.phase != MergePhase.RESTORING_ORIGINAL_BRANCH:
            session.advance(MergePhase.RESTORING_ORIGINAL_BRANCH)
        try:
            restore_original_branch(session, self.deps)
        except RestoreFailed as e:
            logger.error("Could not restore original branch", error=str(e))
            return e
        return None


class BranchCreator:
    """Runs the branch creation graph."""

    def __init__(self, deps: WorkflowDeps):
        self.deps = deps

    async def run(self) -> WorkflowResult:
        session = CreateSession()
        with logger.span("create branch workflow"):
            try:
                result = await create_graph().run(
                    state=session, deps=self.deps, inputs=SelectPrefix()
                )
            except UserCancelled as e:
                logger.info("Branch creation cancelled", reason=str(e))
                result = WorkflowResult.cancelled(str(e))
            except BranchsmithError as e:
                logger.error("Branch creation failed", error=str(e))
                result = WorkflowResult.failed(str(e))
        return await _report(self.deps, result)


class QuickCommit:
    """Commit everything, then optionally merge.

    Holds the merge guard for the whole run; the nested merge shares it.
    """

    def __init__(self, deps: WorkflowDeps, guard: SingleFlight = merge_guard):
        self.deps = deps
        self.guard = guard

    async def run(self) -> WorkflowResult:
        try:
            with self.guard.hold("commit"):
                return await self._run_held()
        except WorkflowBusy as e:
            return await _report(self.deps, WorkflowResult.rejected(str(e)))

    async def _run_held(self) -> WorkflowResult:
        deps = self.deps
        with logger.span("commit workflow"):
            try:
                committed = await self._commit()
            except UserCancelled as e:
                logger.info("Commit cancelled", reason=str(e))
                return await _report(deps, WorkflowResult.cancelled(str(e)))
            except BranchsmithError as e:
                logger.error("Commit failed", error=str(e))
                return await _report(deps, WorkflowResult.failed(str(e)))

            if committed is not None:
                return await _report(deps, committed)

            choice = await deps.prompter.confirm(
                "Changes committed. Merge this branch into a target now?",
                [CONTINUE_TO_MERGE, SKIP_MERGE],
            )
            if choice != CONTINUE_TO_MERGE:
                return await _report(
                    deps, WorkflowResult.completed("Changes committed")
                )

        return await MergeOrchestrator(deps, self.guard).run_held()

    async def _commit(self) -> WorkflowResult | None:
        """Commit pending changes; a result means the run is over."""
        deps = self.deps
        if not deps.inspector.is_repository():
            raise PreconditionFailed("Not inside a git repository")
        if not deps.inspector.has_uncommitted_changes():
            return WorkflowResult.completed("Nothing to commit")

        message = await prompt_commit_message(deps, deps.settings())
        deps.lifecycle.commit(message)
        return None
