"""Branch-level write operations."""

from branchsmith.core.errors import VcsCommandError
from branchsmith.core.log import logger
from branchsmith.git.command import Git
from branchsmith.git.repository import RepositoryInspector


class BranchLifecycle:
    """Create, switch, sync and commit on branches.

    Each write is a single git invocation. Failures propagate as
    VcsCommandError with git's stderr; nothing retries here.
    """

    def __init__(self, git: Git, inspector: RepositoryInspector):
        self.git = git
        self.inspector = inspector

    @property
    def remote(self) -> str:
        return self.inspector.remote

    def checkout(self, name: str) -> None:
        """Switch to a branch, creating it from the remote when only
        the remote has it, or from HEAD when nobody has it."""
        if self.inspector.local_branch_exists(name):
            self.git.run("checkout", branch=name)
        elif self.inspector.remote_branch_exists(name):
            self.git.run(
                "checkout_tracking", branch=name, start=f"{self.remote}/{name}"
            )
        else:
            self.git.run("checkout_new", branch=name)
        logger.debug("Checked out branch", branch=name)

    def create_branch(self, name: str, base: str, checkout: bool = True) -> None:
        template = "create_and_checkout" if checkout else "create_only"
        self.git.run(template, branch=name, base=base)
        logger.info("Created branch", branch=name, base=base, checkout=checkout)

        # A branch started from a remote-tracking ref would otherwise
        # track the base branch
        if base in self.inspector.remote_branch_names():
            try:
                self.git.run("unset_upstream", branch=name)
            except VcsCommandError as e:
                logger.warn(
                    "Could not clear upstream of new branch",
                    branch=name,
                    error=e.stderr,
                )

    def create_and_checkout(self, name: str, base: str) -> None:
        self.create_branch(name, base, checkout=True)

    def create_only(self, name: str, base: str) -> None:
        self.create_branch(name, base, checkout=False)

    def ensure_upstream(self, name: str) -> None:
        """Track remote/name when it exists and is not already the
        upstream.

        A failing upstream lookup counts as "no upstream".
        """
        if not self.inspector.remote_branch_exists(name):
            return
        expected = f"{self.remote}/{name}"
        if self.inspector.upstream_of(name) == expected:
            return
        self.git.run("set_upstream", upstream=expected, branch=name)
        logger.debug("Set upstream", branch=name, upstream=expected)

    def ensure_remote_branch(self, name: str) -> None:
        if self.inspector.remote_branch_exists(name):
            self.ensure_upstream(name)
        else:
            logger.info("Publishing branch to remote", branch=name)
            self.push(name, set_upstream=True)

    def pull(self, name: str) -> None:
        self.git.run("pull", remote=self.remote, branch=name)

    def push(self, name: str, set_upstream: bool = False) -> None:
        template = "push_upstream" if set_upstream else "push"
        self.git.run(template, remote=self.remote, branch=name)
        logger.info("Pushed branch", branch=name, set_upstream=set_upstream)

    def merge(self, source: str) -> None:
        self.git.run("merge", source=source)

    def commit(self, message: str) -> None:
        """Stage everything, then commit."""
        self.git.run("stage_all")
        self.git.run("commit", message=message)
        logger.info("Committed changes", message=message)

    def abort_merge(self) -> None:
        self.git.run("merge_abort")
        logger.info("Aborted merge")

    def open_file(self, opener: str, path: str) -> None:
        self.git.open_in_editor(opener, path)
