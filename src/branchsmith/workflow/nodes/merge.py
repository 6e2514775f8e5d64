"""Merge workflow nodes.

PrepareEnvironment -> SelectTarget -> MergeIntoTarget
    -> [ResolveConflicts] -> PushTarget -> RestoreOriginalBranch -> End
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from branchsmith.branch.naming import is_feature_branch
from branchsmith.core.config import Config
from branchsmith.core.errors import (
    ConflictUnresolved,
    NotOnBranch,
    PreconditionFailed,
    RestoreFailed,
    UserCancelled,
    VcsCommandError,
)
from branchsmith.core.log import logger
from branchsmith.core.result import WorkflowResult
from branchsmith.workflow.deps import WorkflowDeps
from branchsmith.workflow.state import MergePhase, MergeSession

MAX_COMMIT_MESSAGE_LENGTH = 100

COMMIT_AND_PUSH = "Commit and push"
CANCEL = "Cancel"
OPEN_FIRST_FILE = "Open first conflicted file"
ABORT_MERGE = "Abort merge"
RESOLVE_MANUALLY = "Resolve manually, then continue"
RECHECK = "Re-check"
COMMIT_RESOLUTION = "Commit"

MergeContext = GraphRunContext[MergeSession, WorkflowDeps]


def validate_commit_message(message: str) -> str | None:
    if not message.strip():
        return "Commit message must not be empty"
    if len(message) > MAX_COMMIT_MESSAGE_LENGTH:
        return (
            f"Commit message must be at most "
            f"{MAX_COMMIT_MESSAGE_LENGTH} characters"
        )
    return None


async def prompt_commit_message(deps: WorkflowDeps, config: Config) -> str:
    """Ask for a commit message and return it with the commit prefix.

    Raises:
        UserCancelled: If no message was entered
    """
    message = await deps.prompter.input(
        "Commit message",
        placeholder="describe your change",
        validator=validate_commit_message,
    )
    if message is None:
        raise UserCancelled("No commit message entered")
    return f"{config.merge.commit_prefix}{message.strip()}"


@dataclass
class PrepareEnvironment(BaseNode[MergeSession, WorkflowDeps, WorkflowResult]):
    """Check the repository and make the feature branch safe to merge."""

    async def run(self, ctx: MergeContext) -> SelectTarget:
        session, deps = ctx.state, ctx.deps
        config = deps.settings()
        session.advance(MergePhase.PREPARING_ENVIRONMENT)

        if not deps.inspector.is_repository():
            raise PreconditionFailed("Not inside a git repository")

        try:
            current = deps.inspector.current_branch()
        except NotOnBranch as e:
            raise PreconditionFailed(
                "HEAD is detached; check out your feature branch first"
            ) from e

        prefixes = config.branch.prefix_names()
        if not is_feature_branch(current, prefixes):
            accepted = ", ".join(f"{p}/*" for p in prefixes) or "(none)"
            raise PreconditionFailed(
                f"'{current}' is not a feature branch. "
                f"Accepted patterns: {accepted}"
            )
        session.original_branch = current

        deps.lifecycle.ensure_remote_branch(current)

        if deps.inspector.has_uncommitted_changes():
            choice = await deps.prompter.confirm(
                f"'{current}' has uncommitted changes. They must be "
                "committed before merging.",
                [COMMIT_AND_PUSH, CANCEL],
            )
            if choice != COMMIT_AND_PUSH:
                raise UserCancelled("Merge cancelled: uncommitted changes")
            message = await prompt_commit_message(deps, config)
            deps.lifecycle.commit(message)
            deps.lifecycle.push(current)

        return SelectTarget()


@dataclass
class SelectTarget(BaseNode[MergeSession, WorkflowDeps, WorkflowResult]):
    """Ask which configured branch to merge into."""

    async def run(self, ctx: MergeContext) -> MergeIntoTarget:
        session, deps = ctx.state, ctx.deps
        targets = deps.settings().merge.target_names()
        if not targets:
            raise PreconditionFailed("No target branches are configured")

        session.advance(MergePhase.SELECTING_TARGET)
        target = await deps.prompter.select(
            targets, f"Merge '{session.original_branch}' into"
        )
        if target is None:
            raise UserCancelled("No target branch selected")
        session.target_branch = target
        return MergeIntoTarget()


@dataclass
class MergeIntoTarget(BaseNode[MergeSession, WorkflowDeps, WorkflowResult]):
    """Check out the target, bring it up to date and merge into it."""

    async def run(self, ctx: MergeContext) -> ResolveConflicts | PushTarget:
        session, deps = ctx.state, ctx.deps
        target = session.target_branch
        session.advance(MergePhase.MERGING)
        await deps.prompter.notify(
            f"Merging '{session.original_branch}' into '{target}'; "
            "do not modify the repository until this finishes"
        )

        deps.lifecycle.checkout(target)
        session.target_has_remote = deps.inspector.remote_branch_exists(target)
        if session.target_has_remote:
            deps.lifecycle.ensure_upstream(target)
            deps.lifecycle.pull(target)

        try:
            deps.lifecycle.merge(session.original_branch)
        except VcsCommandError:
            if not deps.inspector.has_merge_conflicts():
                raise
            session.conflict_files = deps.inspector.conflicted_files()
            logger.warn(
                "Merge produced conflicts",
                target=target,
                files=session.conflict_files,
            )
            return ResolveConflicts()

        return PushTarget()


@dataclass
class ResolveConflicts(BaseNode[MergeSession, WorkflowDeps, WorkflowResult]):
    """Hand conflicts to the user: open a file, abort, or wait for a
    manual resolution."""

    async def run(self, ctx: MergeContext) -> PushTarget:
        session, deps = ctx.state, ctx.deps
        config = deps.settings()
        session.advance(MergePhase.CONFLICT_PENDING)

        files = session.conflict_files
        choice = await deps.prompter.confirm(
            f"{len(files)} file(s) have merge conflicts:\n" + "\n".join(files),
            [OPEN_FIRST_FILE, ABORT_MERGE, RESOLVE_MANUALLY],
        )

        if choice == OPEN_FIRST_FILE and files:
            session.leave_on_target = True
            deps.lifecycle.open_file(config.merge.open_file_command, files[0])
            raise UserCancelled(
                f"Resolve the conflicts on '{session.target_branch}', "
                "commit, then run the merge again"
            )
        if choice == ABORT_MERGE:
            deps.lifecycle.abort_merge()
            raise ConflictUnresolved("Merge aborted by user")
        if choice != RESOLVE_MANUALLY:
            deps.lifecycle.abort_merge()
            raise UserCancelled("Merge cancelled; the merge was aborted")

        await self._wait_for_resolution(deps, config)
        return PushTarget()

    async def _wait_for_resolution(
        self, deps: WorkflowDeps, config: Config
    ) -> None:
        attempts = config.merge.conflict_poll_attempts
        for attempt in range(1, attempts + 1):
            if not deps.inspector.has_merge_conflicts():
                await self._commit_resolution(deps, config)
                return

            remaining = deps.inspector.conflicted_files()
            logger.info(
                "Conflicts still present",
                attempt=attempt,
                attempts=attempts,
                files=remaining,
            )
            choice = await deps.prompter.confirm(
                f"Conflicts remain ({attempt}/{attempts}): "
                + ", ".join(remaining),
                [RECHECK, ABORT_MERGE],
            )
            if choice == ABORT_MERGE:
                deps.lifecycle.abort_merge()
                raise ConflictUnresolved("Merge aborted by user")
            if choice != RECHECK:
                deps.lifecycle.abort_merge()
                raise UserCancelled("Merge cancelled; the merge was aborted")

        deps.lifecycle.abort_merge()
        raise ConflictUnresolved(
            f"Conflicts still unresolved after {attempts} checks; "
            "the merge was aborted"
        )

    async def _commit_resolution(
        self, deps: WorkflowDeps, config: Config
    ) -> None:
        if not deps.inspector.has_uncommitted_changes():
            return
        choice = await deps.prompter.confirm(
            "Conflicts resolved. Commit the merge result?",
            [COMMIT_RESOLUTION, CANCEL],
        )
        if choice != COMMIT_RESOLUTION:
            deps.lifecycle.abort_merge()
            raise UserCancelled("Merge cancelled; the merge was aborted")
        deps.lifecycle.commit(config.merge.conflict_commit_message)


@dataclass
class PushTarget(BaseNode[MergeSession, WorkflowDeps, WorkflowResult]):
    async def run(self, ctx: MergeContext) -> RestoreOriginalBranch:
        session, deps = ctx.state, ctx.deps
        session.advance(MergePhase.PUSHING)
        deps.lifecycle.push(
            session.target_branch,
            set_upstream=not session.target_has_remote,
        )
        return RestoreOriginalBranch()


def restore_original_branch(session: MergeSession, deps: WorkflowDeps) -> None:
    """Check the original branch out again and re-attach its upstream.

    Raises:
        RestoreFailed: If the checkout or upstream fix-up fails
    """
    branch = session.original_branch
    try:
        try:
            current = deps.inspector.current_branch()
        except NotOnBranch:
            current = None
        if current != branch:
            deps.lifecycle.checkout(branch)
        deps.lifecycle.ensure_upstream(branch)
    except VcsCommandError as e:
        raise RestoreFailed(branch, e) from e
    logger.info("Restored original branch", branch=branch)


@dataclass
class RestoreOriginalBranch(
    BaseNode[MergeSession, WorkflowDeps, WorkflowResult]
):
    async def run(self, ctx: MergeContext) -> End[WorkflowResult]:
        session, deps = ctx.state, ctx.deps
        session.advance(MergePhase.RESTORING_ORIGINAL_BRANCH)
        restore_original_branch(session, deps)
        session.advance(MergePhase.COMPLETED)
        return End(
            WorkflowResult.completed(
                f"Merged '{session.original_branch}' into "
                f"'{session.target_branch}' and pushed",
                branch=session.target_branch,
            )
        )
