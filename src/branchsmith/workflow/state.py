"""Per-invocation state carried through the workflow graphs."""

from enum import Enum

from pydantic import Field

from branchsmith.core.base import BaseState
from branchsmith.core.log import logger


class MergePhase(str, Enum):
    IDLE = "idle"
    PREPARING_ENVIRONMENT = "preparing_environment"
    SELECTING_TARGET = "selecting_target"
    MERGING = "merging"
    CONFLICT_PENDING = "conflict_pending"
    PUSHING = "pushing"
    RESTORING_ORIGINAL_BRANCH = "restoring_original_branch"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({MergePhase.COMPLETED, MergePhase.FAILED})


class MergeSession(BaseState):
    """Everything one merge run knows. Discarded when the run returns."""

    original_branch: str | None = Field(
        default=None,
        description="Feature branch checked out when the merge started",
    )
    target_branch: str | None = Field(
        default=None,
        description="Branch selected to merge into",
    )
    phase: MergePhase = Field(default=MergePhase.IDLE)
    history: list[MergePhase] = Field(
        default_factory=list,
        description="Phases entered so far, in order",
    )
    conflict_files: list[str] = Field(default_factory=list)
    target_has_remote: bool = Field(
        default=False,
        description="Whether the target existed on the remote before pushing",
    )
    leave_on_target: bool = Field(
        default=False,
        description=(
            "Set when the run stops mid-merge on purpose, so the original "
            "branch must not be restored"
        ),
    )

    def advance(self, phase: MergePhase) -> None:
        if self.phase in TERMINAL_PHASES:
            raise RuntimeError(
                f"Merge session already finished ({self.phase.value})"
            )
        logger.info(
            "Merge phase {phase}",
            phase=phase.value,
            previous=self.phase.value,
            target=self.target_branch,
        )
        self.phase = phase
        self.history.append(phase)


class CreateSession(BaseState):
    """State of one branch-creation run."""

    prefix: str | None = None
    base_branch: str | None = None
    author: str | None = None
    date: str | None = None
    description: str | None = None
    branch_name: str | None = None
    description_attempts: int = 0
