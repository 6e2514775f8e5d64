#!/usr/bin/env python3
"""branchsmith CLI - feature branch creation and merging for git."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from branchsmith.command import (
    CommitCommand,
    CreateCommand,
    MergeCommand,
    PrefixesCommand,
    ResetCommand,
    StatusCommand,
    TargetsCommand,
)
from branchsmith.core.config import State


class CliState(State):
    """Create feature branches with consistent names and merge them
    into shared target branches.

    Branch names follow prefix/date/description_author, for example
    feature/20240115/user-login_alice. Merges publish the feature
    branch, update the target, guide you through conflicts, push the
    target and switch back.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.merge.commit_prefix "fix: ")
    2. Environment variables
       (BRANCHSMITH_CONFIG__GIT__REMOTE=upstream)
    3. .env file
    4. --include files, then ./branchsmith.yaml, then
       ~/.config/branchsmith/branchsmith.yaml, then package defaults
    """

    create: CliSubCommand[CreateCommand]
    merge: CliSubCommand[MergeCommand]
    commit: CliSubCommand[CommitCommand]
    targets: CliSubCommand[TargetsCommand]
    prefixes: CliSubCommand[PrefixesCommand]
    status: CliSubCommand[StatusCommand]
    reset: CliSubCommand[ResetCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closing the config flushes and closes the log sinks on exit
        with self.config:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
