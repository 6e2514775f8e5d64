"""Templated git invocations."""

import shlex
from pathlib import Path

from branchsmith.core.errors import ConfigurationError, VcsCommandError
from branchsmith.core.log import logger
from branchsmith.core.runner import Runner


class Git:
    """Runs the git commands named in config.commands["git"].

    Every template argument is shell-quoted before substitution, so
    branch names and commit messages reach git verbatim.
    """

    def __init__(
        self,
        templates: dict[str, str],
        workdir: Path,
        runner: Runner | None = None,
    ):
        self.templates = templates
        self.workdir = workdir
        self.runner = runner or Runner()

    @classmethod
    def from_config(cls, config, runner: Runner | None = None) -> "Git":
        return cls(
            templates=config.commands.get("git", {}),
            workdir=config.git.workdir,
            runner=runner,
        )

    def command(self, name: str, **kwargs) -> str:
        """Render the named template with quoted arguments."""
        try:
            template = self.templates[name]
        except KeyError:
            raise ConfigurationError(
                f"No git command template named '{name}'"
            ) from None
        quoted = {key: shlex.quote(str(value)) for key, value in kwargs.items()}
        return template.format(**quoted)

    def run(self, name: str, **kwargs) -> str:
        """Run a command and return its trimmed stdout.

        Raises:
            VcsCommandError: If git exits non-zero
        """
        cmd = self.command(name, **kwargs)
        result = self.runner.execute(cmd, cwd=self.workdir, check=False)
        if result.exited != 0:
            logger.debug(
                "git command failed",
                command=cmd,
                exit_code=result.exited,
                stderr=result.stderr.strip(),
            )
            raise VcsCommandError(cmd, result.stderr, result.exited)
        return result.stdout.strip()

    def probe(self, name: str, **kwargs) -> str | None:
        """Run a read-only command; None when it fails."""
        try:
            return self.run(name, **kwargs)
        except VcsCommandError:
            return None

    def succeeds(self, name: str, **kwargs) -> bool:
        return self.probe(name, **kwargs) is not None

    def open_in_editor(self, opener: str, path: str) -> None:
        """Hand a file to the user's editor, attached to the terminal."""
        cmd = f"{opener} {shlex.quote(path)}"
        result = self.runner.execute(
            cmd, cwd=self.workdir, check=False, interactive=True
        )
        if result.exited != 0:
            raise VcsCommandError(cmd, result.stderr, result.exited)
