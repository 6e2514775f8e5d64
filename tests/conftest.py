"""Pytest configuration and fixtures for branchsmith tests."""

import inspect
import sys
import tempfile
from datetime import date
from pathlib import Path

import pytest

from branchsmith.branch.naming import GitBranchRef
from branchsmith.core.config import (
    BranchConfig,
    BranchPrefix,
    Config,
    MergeConfig,
    TargetBranch,
)
from branchsmith.core.errors import NotOnBranch, VcsCommandError
from branchsmith.core.log import ConsoleSink, setup_logger

FEATURE = "feature/20240115/login_alice"


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure logging for console-only mode during tests.

    Debug output shows up in failing test reports; nothing is written
    to files or sent to logfire.dev.
    """
    test_log_root = Path(tempfile.gettempdir()) / "branchsmith-tests"
    setup_logger(
        log_root=test_log_root,
        session="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    sys.argv = ["branchsmith"]
    yield
    sys.argv = original


@pytest.fixture
def test_config(mock_argv, tmp_path, monkeypatch):
    """Load the full configuration stack from an empty project
    directory, so only package defaults apply.

    Returns:
        Config object with all settings loaded from defaults
    """
    from branchsmith.core.config import State

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return State.load().config


def make_config(**merge_overrides) -> Config:
    """Small in-memory configuration used by workflow tests."""
    merge = {
        "target_branches": [
            TargetBranch(name=name) for name in ("uat", "pre", "test")
        ],
    }
    merge.update(merge_overrides)
    return Config(
        branch=BranchConfig(
            prefixes=[
                BranchPrefix(prefix="feature", is_default=True),
                BranchPrefix(prefix="fix"),
            ],
        ),
        merge=MergeConfig(**merge),
    )


@pytest.fixture
def config():
    return make_config()


class FakeRepo:
    """In-memory stand-in for RepositoryInspector and BranchLifecycle.

    Every write is recorded in calls as a tuple of the method name and
    its arguments.
    """

    remote = "origin"

    def __init__(
        self,
        current: str | None = FEATURE,
        local=None,
        remote_branches=None,
        dirty: bool = False,
        conflicts_on=(),
        conflict_files=("a.ts", "b.ts"),
        user: str | None = "alice",
    ):
        self.repository = True
        self.current = current
        self.local = set(local if local is not None else [
            FEATURE, "main", "uat", "pre", "test",
        ])
        if current:
            self.local.add(current)
        self.remote_branches = set(
            remote_branches if remote_branches is not None else self.local
        )
        self.dirty = dirty
        self.conflicts_on = set(conflicts_on)
        self.conflict_files = list(conflict_files)
        self.conflicts: list[str] = []
        self.merging = False
        self.user = user
        self.fail_checkout_of: set[str] = set()
        self.fail_push = False
        self.calls: list[tuple] = []

    def ops(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    # ---- inspector ----

    def is_repository(self) -> bool:
        return self.repository

    def current_branch(self) -> str:
        if self.current is None:
            raise NotOnBranch("HEAD is detached")
        return self.current

    def list_branches(self) -> list[GitBranchRef]:
        refs = [
            GitBranchRef(name=name, is_current=name == self.current)
            for name in self.local
        ]
        refs += [
            GitBranchRef(name=f"origin/{name}", is_remote=True)
            for name in self.remote_branches
        ]
        return refs

    def has_uncommitted_changes(self) -> bool:
        return self.dirty or self.merging

    def has_merge_conflicts(self) -> bool:
        return bool(self.conflicts)

    def conflicted_files(self) -> list[str]:
        return list(self.conflicts)

    def remote_branch_exists(self, name: str) -> bool:
        return name in self.remote_branches

    def local_branch_exists(self, name: str) -> bool:
        return name in self.local

    def user_name(self) -> str | None:
        return self.user

    # ---- lifecycle ----

    def checkout(self, name: str) -> None:
        self.calls.append(("checkout", name))
        if name in self.fail_checkout_of:
            raise VcsCommandError(
                f"git checkout {name}", "error: pathspec did not match"
            )
        self.local.add(name)
        self.current = name

    def create_branch(self, name: str, base: str, checkout: bool = True):
        self.calls.append(("create_branch", name, base, checkout))
        self.local.add(name)
        if checkout:
            self.current = name

    def ensure_remote_branch(self, name: str) -> None:
        self.calls.append(("ensure_remote_branch", name))
        self.remote_branches.add(name)

    def ensure_upstream(self, name: str) -> None:
        self.calls.append(("ensure_upstream", name))

    def pull(self, name: str) -> None:
        self.calls.append(("pull", name))

    def push(self, name: str, set_upstream: bool = False) -> None:
        self.calls.append(("push", name, set_upstream))
        if self.fail_push:
            raise VcsCommandError(
                f"git push origin {name}", "rejected: non-fast-forward"
            )
        self.remote_branches.add(name)

    def merge(self, source: str) -> None:
        self.calls.append(("merge", source))
        if self.current in self.conflicts_on:
            self.conflicts = list(self.conflict_files)
            self.merging = True
            raise VcsCommandError(
                f"git merge --no-edit {source}",
                "CONFLICT (content): Merge conflict in a.ts",
            )

    def commit(self, message: str) -> None:
        self.calls.append(("commit", message))
        self.dirty = False
        self.merging = False

    def abort_merge(self) -> None:
        self.calls.append(("abort_merge",))
        self.conflicts = []
        self.merging = False

    def open_file(self, opener: str, path: str) -> None:
        self.calls.append(("open_file", opener, path))


class FakePrompter:
    """Answers prompts from a script.

    Each answer is a value, None (cancel), or a callable (sync or
    async) whose return value is used. Input answers rejected by the
    validator are recorded and the next answer is used instead.
    """

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.asked: list[tuple] = []
        self.rejected: list[tuple[str, str]] = []
        self.notices: list[tuple[str, str]] = []

    async def _next(self):
        if not self.answers:
            raise AssertionError(f"Unscripted prompt after {self.asked!r}")
        answer = self.answers.pop(0)
        if callable(answer):
            answer = answer()
            if inspect.isawaitable(answer):
                answer = await answer
        return answer

    async def select(self, options, prompt):
        self.asked.append(("select", prompt, list(options)))
        return await self._next()

    async def input(self, prompt, placeholder="", validator=None):
        self.asked.append(("input", prompt))
        while True:
            answer = await self._next()
            if answer is None or validator is None:
                return answer
            error = validator(answer)
            if error is None:
                return answer
            self.rejected.append((answer, error))

    async def confirm(self, message, options):
        self.asked.append(("confirm", message, list(options)))
        return await self._next()

    async def notify(self, message, level="info"):
        self.notices.append((level, message))


@pytest.fixture
def repo():
    return FakeRepo()


@pytest.fixture
def make_deps(config):
    """Build WorkflowDeps around a FakeRepo and a scripted prompter."""
    from branchsmith.workflow.deps import WorkflowDeps

    def _make(repo, answers=(), settings=None):
        prompter = FakePrompter(answers)
        deps = WorkflowDeps(
            inspector=repo,
            lifecycle=repo,
            prompter=prompter,
            settings=settings or (lambda: config),
            today=lambda: date(2024, 1, 15),
        )
        return deps, prompter

    return _make


@pytest.fixture
def make_repo():
    """FakeRepo factory for tests that need a non-default repository."""
    return FakeRepo


@pytest.fixture
def build_config():
    """make_config as a fixture; keyword arguments override MergeConfig
    fields."""
    return make_config


@pytest.fixture
def scripted_prompter():
    """FakePrompter class, for tests wiring their own WorkflowDeps."""
    return FakePrompter
