"""Exception hierarchy for branchsmith.

Lower layers raise; only the workflow orchestrators catch and turn
exceptions into a WorkflowResult.
"""


class BranchsmithError(Exception):
    """Root of all branchsmith errors."""


class UserCancelled(BranchsmithError):
    """The user dismissed a prompt or chose to stop."""


class PreconditionFailed(BranchsmithError):
    """The repository is not in a state the workflow can start from.

    Raised before any mutation, so nothing needs rolling back.
    """


class ConflictUnresolved(BranchsmithError):
    """Merge conflicts were not resolved (aborted or gave up polling)."""


class VcsCommandError(BranchsmithError):
    """A git command exited non-zero."""

    def __init__(self, command: str, stderr: str = "", exit_code: int = 1):
        self.command = command
        self.stderr = stderr.strip()
        self.exit_code = exit_code
        detail = self.stderr or f"exit code {exit_code}"
        super().__init__(f"git command failed: {command}: {detail}")


class RestoreFailed(BranchsmithError):
    """Switching back to the original branch failed."""

    def __init__(self, branch: str, cause: Exception | None = None):
        self.branch = branch
        self.cause = cause
        message = (
            f"Could not switch back to '{branch}'; "
            f"please run 'git checkout {branch}' manually"
        )
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class NotOnBranch(BranchsmithError):
    """HEAD is detached."""


class WorkflowBusy(BranchsmithError):
    """Another merge workflow is already running."""


class ConfigurationError(BranchsmithError):
    """A settings edit was rejected."""


__all__ = [
    "BranchsmithError",
    "UserCancelled",
    "PreconditionFailed",
    "ConflictUnresolved",
    "VcsCommandError",
    "RestoreFailed",
    "NotOnBranch",
    "WorkflowBusy",
    "ConfigurationError",
]
