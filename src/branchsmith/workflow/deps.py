"""Collaborators handed to every workflow node."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from branchsmith.core.config import Config
from branchsmith.git.lifecycle import BranchLifecycle
from branchsmith.git.repository import RepositoryInspector
from branchsmith.prompt.base import Prompter


@dataclass
class WorkflowDeps:
    """Graph dependencies.

    settings is called at every step, so edits made while the user is
    answering a prompt are picked up by the next step.
    """

    inspector: RepositoryInspector
    lifecycle: BranchLifecycle
    prompter: Prompter
    settings: Callable[[], Config]
    today: Callable[[], date] = field(default=date.today)


def build_deps(state, prompter: Prompter | None = None) -> WorkflowDeps:
    """Wire the git layer and a console prompter from loaded state."""
    from branchsmith.git.command import Git
    from branchsmith.prompt.console import ConsolePrompter

    config = state.config
    git = Git.from_config(config)
    inspector = RepositoryInspector(git, remote=config.git.remote)
    return WorkflowDeps(
        inspector=inspector,
        lifecycle=BranchLifecycle(git, inspector),
        prompter=prompter or ConsolePrompter(),
        settings=state.reload_config,
    )
