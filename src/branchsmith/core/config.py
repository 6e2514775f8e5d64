"""Application state and configuration."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import (
    BaseModel,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from branchsmith.core.base import BaseConfig
from branchsmith.core.log import Logger
from branchsmith.core.yaml_settings import APP_NAME, YamlWithIncludesSettingsSource

# Modules reachable from {name.attr} templates in YAML values, e.g.
# {platformdirs.user_state_dir} or {os.getcwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

PREFIX_PATTERN = re.compile(r'[A-Za-z0-9_-]+')


class BranchPrefix(BaseModel):
    """A configured feature-branch prefix such as 'feature' or 'fix'."""

    prefix: str
    description: str = ""
    is_default: bool = False

    @field_validator('prefix')
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        if not PREFIX_PATTERN.fullmatch(value):
            raise ValueError(
                f"invalid prefix {value!r}: use letters, digits, '_' or '-'"
            )
        return value


class TargetBranch(BaseModel):
    """A configured merge destination."""

    name: str
    description: str = ""


class BranchConfig(BaseConfig):
    """Branch naming settings."""

    prefixes: list[BranchPrefix] = Field(
        default_factory=list,
        description="Accepted feature-branch prefixes",
    )
    custom_git_name: str | None = Field(
        default=None,
        description=(
            "Author name used in branch names instead of "
            "git config user.name"
        ),
    )
    date_format: str = Field(
        default="yyyyMMdd",
        description="Date segment format: yyyyMMdd, yyyy-MM-dd or yyMMdd",
    )
    auto_checkout: bool = Field(
        default=True,
        description="Check out a new branch right after creating it",
    )
    max_description_attempts: int = Field(
        default=5,
        ge=1,
        description=(
            "How many times the description may be re-entered when the "
            "composed branch already exists"
        ),
    )

    def prefix_names(self) -> list[str]:
        return [p.prefix for p in self.prefixes]

    def default_prefix(self) -> BranchPrefix | None:
        for p in self.prefixes:
            if p.is_default:
                return p
        return self.prefixes[0] if self.prefixes else None


class MergeConfig(BaseConfig):
    """Merge workflow settings."""

    target_branches: list[TargetBranch] = Field(
        default_factory=list,
        description="Branches a feature branch can be merged into",
    )
    conflict_poll_attempts: int = Field(
        default=10,
        ge=1,
        description="Re-checks offered while conflicts are being resolved",
    )
    commit_prefix: str = Field(
        default="feat: ",
        description="Prepended to every commit message entered in a workflow",
    )
    conflict_commit_message: str = Field(
        default="fix: resolve merge conflicts",
        description="Commit message used after conflicts are resolved",
    )
    open_file_command: str = Field(
        default="${VISUAL:-${EDITOR:-vi}}",
        description=(
            "Command used to open a conflicted file; the quoted path "
            "is appended"
        ),
    )

    def target_names(self) -> list[str]:
        return [t.name for t in self.target_branches]


class GitConfig(BaseConfig):
    """Repository location and remote."""

    remote: str = Field(
        default="origin",
        description="Remote used for tracking, pulling and pushing",
    )
    workdir: Path = Field(
        default_factory=Path.cwd,
        description="Working tree of the repository to operate on",
    )


class Config(BaseConfig):
    """Configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    branch: BranchConfig = Field(default_factory=BranchConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    git: GitConfig = Field(default_factory=GitConfig)

    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / APP_NAME
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    session: str = Field(
        default="session",
        description="Name of the log subdirectory for this run",
    )

    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command templates by category (git, ...)",
    )

    @model_validator(mode='after')
    def _default_logger(self) -> 'Config':
        if self.logger is None:
            self.logger = Logger()
        return self

    def setup_logging(self) -> None:
        """Configure the global logger from this config."""
        from branchsmith.core.log import setup_logger

        setup_logger(
            log_root=self.log_root,
            session=self.session,
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )

    def close(self):
        from branchsmith.core.log import shutdown_logger
        shutdown_logger()
        super().close()


class State(BaseSettings):
    """Configuration for one invocation.

    Loaded, in priority order, from init arguments, BRANCHSMITH_*
    environment variables, .env and the YAML layers (see
    YamlWithIncludesSettingsSource).
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to merge on top of the configuration. "
            "Use --include on the CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BRANCHSMITH_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    _cli_args: list[str] | None = PrivateAttr(default=None)

    def __init__(self, **values: Any) -> None:
        cli_args = values.get('_cli_parse_args')
        if cli_args is None:
            cli_args = type(self).model_config.get('cli_parse_args')
        super().__init__(**values)
        if cli_args is True:
            cli_args = sys.argv[1:]
        if isinstance(cli_args, (list, tuple)) and cli_args:
            self._cli_args = list(cli_args)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources win
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            file_secret_settings,
        )

    @classmethod
    def load(cls) -> 'State':
        """Load configuration without parsing the command line."""
        return cls(_cli_parse_args=False)

    def reload_config(self) -> Config:
        """Re-read every configuration layer and return the fresh
        Config.

        Workflows call this at each step so that settings edited while
        a workflow waits on the user take effect. Command-line
        arguments seen at construction are parsed again so they keep
        their priority over the files.
        """
        fresh = type(self)(_cli_parse_args=self._cli_args or False)
        self.config = fresh.config
        return self.config

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Replace {config.*} and {platformdirs.*} templates in every
        string and Path value, then configure logging from the result."""
        self._substitute_recursive(self)
        self.config.setup_logging()
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Resolve {dotted.path} references.

        Examples:
            "{config.git.workdir}/.git" -> "/home/user/repo/.git"
            "{platformdirs.user_log_dir}" -> "~/.local/state/branchsmith/log"

        Unknown references are left untouched, which keeps git
        templates such as {branch} or {{upstream}} intact.
        """
        def replace_template(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            elif parts[0] == 'config':
                obj = self
            else:
                return match.group(0)

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj(APP_NAME, appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'(?<!\{)\{([a-z_]+\.[a-z._]+)\}(?!\})', replace_template, value)


__all__ = [
    "State",
    "Config",
    "BranchConfig",
    "MergeConfig",
    "GitConfig",
    "BranchPrefix",
    "TargetBranch",
]
