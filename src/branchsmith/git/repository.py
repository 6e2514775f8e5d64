"""Read-only queries against the live repository."""

from pydantic import BaseModel

from branchsmith.branch.naming import GitBranchRef
from branchsmith.core.errors import NotOnBranch, VcsCommandError
from branchsmith.core.log import logger
from branchsmith.git.command import Git

# Porcelain status codes git uses for unmerged paths
CONFLICT_CODES = frozenset({'UU', 'AA', 'DD', 'AU', 'UA', 'DU', 'UD'})


def has_conflict_codes(porcelain: str) -> bool:
    """True when any line of `git status --porcelain` output is
    unmerged."""
    return any(line[:2] in CONFLICT_CODES for line in porcelain.splitlines())


class StatusSummary(BaseModel):
    """Snapshot shown by the status command."""

    branch: str | None
    dirty: bool
    conflicts: bool
    conflicted_files: list[str]
    remotes: list[str]
    upstream: str | None


class RepositoryInspector:
    """Stateless view of the repository.

    Every call goes to git; nothing is cached. Probes never raise: a
    failing git command means the thing asked about is absent.
    """

    def __init__(self, git: Git, remote: str = "origin"):
        self.git = git
        self.remote = remote

    def is_repository(self) -> bool:
        return self.git.succeeds("is_repository")

    def current_branch(self) -> str:
        """Name of the checked out branch.

        Raises:
            NotOnBranch: If HEAD is detached
        """
        try:
            return self.git.run("current_branch")
        except VcsCommandError as e:
            raise NotOnBranch("HEAD is not on a branch") from e

    def list_branches(self) -> list[GitBranchRef]:
        """Local branches followed by remote-tracking ones."""
        try:
            current = self.current_branch()
        except NotOnBranch:
            current = None

        refs = [
            GitBranchRef(name=name, commit=commit, is_current=name == current)
            for name, commit in self._parse_refs(self.git.run("list_local"))
        ]

        remote_output = self.git.probe("list_remote")
        if remote_output is None:
            logger.debug("Could not enumerate remote branches")
            return refs

        for name, commit in self._parse_refs(remote_output):
            name = name.removeprefix("refs/remotes/")
            if name.endswith("/HEAD"):
                continue
            refs.append(
                GitBranchRef(
                    name=name,
                    commit=commit,
                    is_remote=True,
                    is_current=name == current,
                )
            )
        return refs

    def remote_branch_names(self) -> set[str]:
        output = self.git.probe("list_remote") or ""
        names = set()
        for name, _commit in self._parse_refs(output):
            name = name.removeprefix("refs/remotes/")
            if not name.endswith("/HEAD"):
                names.add(name)
        return names

    def has_uncommitted_changes(self) -> bool:
        return bool(self.git.run("status"))

    def has_merge_conflicts(self) -> bool:
        output = self.git.probe("status")
        if output is None:
            return False
        return has_conflict_codes(output)

    def conflicted_files(self) -> list[str]:
        output = self.git.probe("conflicted_files") or ""
        return [line.strip() for line in output.splitlines() if line.strip()]

    def remote_branch_exists(self, name: str) -> bool:
        output = self.git.probe("ls_remote", remote=self.remote, branch=name)
        if not output:
            return False
        # ls-remote patterns match on path suffix; require the exact ref
        return any(
            line.split()[-1] == f"refs/heads/{name}"
            for line in output.splitlines()
            if line.strip()
        )

    def local_branch_exists(self, name: str) -> bool:
        return self.git.succeeds("verify_local", branch=name)

    def upstream_of(self, name: str) -> str | None:
        return self.git.probe("upstream", branch=name) or None

    def user_name(self) -> str | None:
        return self.git.probe("user_name") or None

    def remotes(self) -> list[str]:
        output = self.git.probe("remotes") or ""
        return output.split()

    def status_summary(self) -> StatusSummary:
        try:
            branch = self.current_branch()
        except NotOnBranch:
            branch = None
        return StatusSummary(
            branch=branch,
            dirty=self.has_uncommitted_changes(),
            conflicts=self.has_merge_conflicts(),
            conflicted_files=self.conflicted_files(),
            remotes=self.remotes(),
            upstream=self.upstream_of(branch) if branch else None,
        )

    @staticmethod
    def _parse_refs(output: str):
        for line in output.splitlines():
            parts = line.split()
            if not parts:
                continue
            yield parts[0], parts[1] if len(parts) > 1 else ""
