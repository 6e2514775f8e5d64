"""Subprocess execution on top of invoke."""

from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from branchsmith.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    Output is always captured, never echoed; callers decide what to
    log and what to show the user.
    """

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
        interactive: bool = False,
    ) -> Result:
        """Run a shell command and return its result.

        Args:
            command: Command string to execute
            cwd: Working directory for the command
            timeout: Maximum execution time in seconds
            check: If True, raise on non-zero exit code
            env: Extra environment variables (merged into os.environ)
            interactive: Attach the command to the terminal (pty,
                stdin and output passed through), for editors

        Returns:
            invoke.Result with stdout, stderr and exited

        Raises:
            invoke.UnexpectedExit: If check=True and the command
                exits non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if interactive:
            kwargs.update(hide=False, in_stream=None, pty=True)
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.debug("Running command", command=command, cwd=str(cwd or "."))

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            # Report timeouts as a failed exit instead of a separate
            # exception type
            result = e.result
            result.exited = -1

        if result.stdout:
            logger.spew("Command output", command=command, stdout=result.stdout)
        return result
