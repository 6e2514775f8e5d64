"""Result types returned by validators and workflows."""

from enum import Enum

from pydantic import BaseModel


class ValidationResult(BaseModel):
    """Outcome of a syntax check. Errors are messages, never
    exceptions."""

    is_valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)


class WorkflowStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REJECTED = "rejected"


# Process exit code for each terminal status
EXIT_CODES = {
    WorkflowStatus.COMPLETED: 0,
    WorkflowStatus.CANCELLED: 0,
    WorkflowStatus.FAILED: 1,
    WorkflowStatus.REJECTED: 2,
}


class WorkflowResult(BaseModel):
    """Uniform result of the create, merge and commit workflows."""

    status: WorkflowStatus
    message: str = ""
    branch: str | None = None

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.status]

    @classmethod
    def completed(cls, message: str, branch: str | None = None):
        return cls(
            status=WorkflowStatus.COMPLETED, message=message, branch=branch
        )

    @classmethod
    def cancelled(cls, message: str = "Cancelled"):
        return cls(status=WorkflowStatus.CANCELLED, message=message)

    @classmethod
    def failed(cls, message: str, branch: str | None = None):
        return cls(
            status=WorkflowStatus.FAILED, message=message, branch=branch
        )

    @classmethod
    def rejected(cls, message: str):
        return cls(status=WorkflowStatus.REJECTED, message=message)
