"""Process-wide guard allowing one merge workflow at a time."""

import contextlib
import threading

from branchsmith.core.errors import WorkflowBusy
from branchsmith.core.log import logger


class SingleFlight:
    """Non-blocking mutex with context-manager release.

    A second acquire while the guard is held fails immediately with
    WorkflowBusy instead of queueing.

        with guard.hold("merge"):
            ...
    """

    def __init__(self, name: str = "merge"):
        self.name = name
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextlib.contextmanager
    def hold(self, activity: str | None = None):
        if not self._lock.acquire(blocking=False):
            logger.warn(
                "Workflow already running, rejecting new request",
                guard=self.name,
                activity=activity,
            )
            raise WorkflowBusy(
                f"A {self.name} workflow is already running, "
                "please wait for it to finish"
            )
        try:
            yield self
        finally:
            self._lock.release()


# Shared by the merge and commit-and-merge workflows
merge_guard = SingleFlight("merge")
