"""Layered YAML configuration with include: support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from branchsmith.core.log import logger

APP_NAME = "branchsmith"
PROJECT_CONFIG = f"{APP_NAME}.yaml"


def default_config_path() -> Path:
    """Package defaults shipped alongside the code."""
    return Path(__file__).parent.parent / "defaults" / "default.yaml"


def user_config_path() -> Path:
    return Path(user_config_dir(APP_NAME, appauthor=False)) / PROJECT_CONFIG


def project_config_path() -> Path:
    return Path(PROJECT_CONFIG)


def cli_includes(argv: list[str]) -> list[str]:
    """Collect the values of every --include option in argv."""
    includes = []
    i = 1
    while i < len(argv):
        if argv[i] == "--include" and i + 1 < len(argv):
            includes.append(argv[i + 1])
            i += 1
        elif argv[i].startswith("--include="):
            includes.append(argv[i].split("=", 1)[1])
        i += 1
    return includes


def load_yaml(filepath: Path) -> dict:
    with open(filepath, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def merge_dicts(base: dict, override: dict) -> dict:
    """Return base updated recursively with override (override wins)."""
    result = base.copy()
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source layering every configuration file.

    Merge order, lowest priority first:
        package defaults < user config < ./branchsmith.yaml
        < --include files

    Each file may itself name further files with an include: key;
    those are loaded first and overridden by the including file.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        includes = cli_includes(sys.argv)
        super().__init__(settings_cls, includes or yaml_file)

    def _read_files(self, files, deep_merge: bool = False):
        files_to_load = [
            default_config_path(),
            user_config_path(),
            project_config_path(),
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        result = {}
        for file_path in files_to_load:
            if file_path.is_file():
                with logger.span(
                    "Loading configuration", file=str(file_path)
                ):
                    data = self._load_file_recursive(file_path, set())
                    result = merge_dicts(result, data)
            else:
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )
        return result

    def _load_file_recursive(self, filepath: Path, visited: set[Path]) -> dict:
        """Load one file with its include: chain resolved.

        Raises:
            ValueError: If a file includes itself, directly or not
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        data = load_yaml(filepath)

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]
        for inc in includes:
            inc_path = Path(inc).expanduser()
            if not inc_path.is_absolute():
                inc_path = filepath.parent / inc_path
            inc_data = self._load_file_recursive(inc_path, visited.copy())
            data = merge_dicts(inc_data, data)

        return data
