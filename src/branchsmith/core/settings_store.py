"""Edits to target branches and prefixes, persisted to the project
configuration file."""

from collections.abc import Callable
from pathlib import Path

import yaml

from branchsmith.branch.naming import validate_prefix
from branchsmith.core.config import BranchPrefix, Config, TargetBranch
from branchsmith.core.errors import ConfigurationError
from branchsmith.core.log import logger
from branchsmith.core.yaml_settings import load_yaml, project_config_path


class SettingsStore:
    """Reads the effective configuration and writes changes to
    ./branchsmith.yaml.

    Lists are always written whole, so the project file overrides
    the package defaults and user config for that list.
    """

    def __init__(
        self,
        current: Callable[[], Config],
        path: Path | None = None,
    ):
        self._current = current
        self.path = path or project_config_path()

    # ---- target branches ----

    def targets(self) -> list[TargetBranch]:
        return [t.model_copy() for t in self._current().merge.target_branches]

    def add_target(self, name: str, description: str = "") -> TargetBranch:
        name = name.strip()
        if not name:
            raise ConfigurationError("Target branch name must not be empty")
        targets = self.targets()
        if any(t.name == name for t in targets):
            raise ConfigurationError(f"Target branch '{name}' already exists")

        target = TargetBranch(name=name, description=description)
        targets.append(target)
        self._write_section(
            "merge", "target_branches", [t.model_dump() for t in targets]
        )
        logger.info("Added target branch", target=name)
        return target

    def remove_target(self, name: str) -> None:
        targets = self.targets()
        remaining = [t for t in targets if t.name != name]
        if len(remaining) == len(targets):
            raise ConfigurationError(f"Target branch '{name}' is not configured")
        if not remaining:
            raise ConfigurationError(
                "At least one target branch must remain configured"
            )
        self._write_section(
            "merge", "target_branches", [t.model_dump() for t in remaining]
        )
        logger.info("Removed target branch", target=name)

    # ---- branch prefixes ----

    def prefixes(self) -> list[BranchPrefix]:
        return [p.model_copy() for p in self._current().branch.prefixes]

    def add_prefix(
        self,
        prefix: str,
        description: str = "",
        is_default: bool = False,
    ) -> BranchPrefix:
        prefix = prefix.strip()
        check = validate_prefix(prefix)
        if not check.is_valid:
            raise ConfigurationError(check.error)

        prefixes = self.prefixes()
        if any(p.prefix == prefix for p in prefixes):
            raise ConfigurationError(f"Prefix '{prefix}' already exists")

        if is_default:
            for p in prefixes:
                p.is_default = False
        entry = BranchPrefix(
            prefix=prefix,
            description=description,
            is_default=is_default or not prefixes,
        )
        prefixes.append(entry)
        self._write_prefixes(prefixes)
        logger.info("Added branch prefix", prefix=prefix, default=is_default)
        return entry

    def remove_prefix(self, prefix: str) -> None:
        prefixes = self.prefixes()
        removed = [p for p in prefixes if p.prefix == prefix]
        if not removed:
            raise ConfigurationError(f"Prefix '{prefix}' is not configured")

        remaining = [p for p in prefixes if p.prefix != prefix]
        if removed[0].is_default and remaining:
            remaining[0].is_default = True
        self._write_prefixes(remaining)
        logger.info("Removed branch prefix", prefix=prefix)

    def set_default_prefix(self, prefix: str) -> None:
        prefixes = self.prefixes()
        if not any(p.prefix == prefix for p in prefixes):
            raise ConfigurationError(f"Prefix '{prefix}' is not configured")
        for p in prefixes:
            p.is_default = p.prefix == prefix
        self._write_prefixes(prefixes)
        logger.info("Set default branch prefix", prefix=prefix)

    # ---- reset ----

    def reset(self) -> None:
        """Drop project overrides of the branch and merge sections so the
        package defaults apply again."""
        data = self._read()
        config = data.get("config") or {}
        for section in ("branch", "merge"):
            config.pop(section, None)
        if config:
            data["config"] = config
        else:
            data.pop("config", None)
        self._write(data)
        logger.info("Reset branch and merge settings", path=str(self.path))

    # ---- file access ----

    def _write_prefixes(self, prefixes: list[BranchPrefix]) -> None:
        self._write_section(
            "branch", "prefixes", [p.model_dump() for p in prefixes]
        )

    def _write_section(self, section: str, key: str, value) -> None:
        data = self._read()
        data.setdefault("config", {}).setdefault(section, {})[key] = value
        self._write(data)

    def _read(self) -> dict:
        if self.path.is_file():
            return load_yaml(self.path)
        return {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        logger.debug("Wrote settings", path=str(self.path))
