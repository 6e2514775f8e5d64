"""CLI command modules for branchsmith."""

from branchsmith.command.commit import CommitCommand
from branchsmith.command.create import CreateCommand
from branchsmith.command.merge import MergeCommand
from branchsmith.command.prefixes import PrefixesCommand
from branchsmith.command.reset import ResetCommand
from branchsmith.command.status import StatusCommand
from branchsmith.command.targets import TargetsCommand

__all__ = [
    "CommitCommand",
    "CreateCommand",
    "MergeCommand",
    "PrefixesCommand",
    "ResetCommand",
    "StatusCommand",
    "TargetsCommand",
]
