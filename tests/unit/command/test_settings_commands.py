"""Tests for the targets, prefixes and reset commands."""

import asyncio

import pytest
import yaml

from branchsmith.command import PrefixesCommand, ResetCommand, TargetsCommand
from branchsmith.core.config import State


@pytest.fixture
def state(tmp_path, monkeypatch, mock_argv):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return State.load()


def project_file(tmp_path):
    return yaml.safe_load((tmp_path / "branchsmith.yaml").read_text())


def test_list_targets(state, capsys):
    code = asyncio.run(TargetsCommand().run_workflow(state))
    assert code == 0
    out = capsys.readouterr().out
    assert "uat" in out and "pre" in out and "test" in out


def test_add_target(state, tmp_path):
    code = asyncio.run(
        TargetsCommand(add="prod", description="Production").run_workflow(state)
    )
    assert code == 0
    names = [
        t["name"]
        for t in project_file(tmp_path)["config"]["merge"]["target_branches"]
    ]
    assert names == ["uat", "pre", "test", "prod"]
    assert state.config.merge.target_names()[-1] == "prod"


def test_duplicate_target_fails(state, capsys):
    code = asyncio.run(TargetsCommand(add="uat").run_workflow(state))
    assert code == 1
    assert "already exists" in capsys.readouterr().out


def test_remove_target(state):
    asyncio.run(TargetsCommand(remove="pre").run_workflow(state))
    assert state.config.merge.target_names() == ["uat", "test"]


def test_prefix_set_default(state):
    code = asyncio.run(
        PrefixesCommand(set_default="fix").run_workflow(state)
    )
    assert code == 0
    assert state.config.branch.default_prefix().prefix == "fix"


def test_invalid_prefix_fails(state):
    code = asyncio.run(PrefixesCommand(add="a/b").run_workflow(state))
    assert code == 1


def test_reset_without_prompt(state, tmp_path):
    asyncio.run(TargetsCommand(add="prod").run_workflow(state))

    code = asyncio.run(ResetCommand(yes=True).run_workflow(state))

    assert code == 0
    assert project_file(tmp_path) == {}
    assert state.reload_config().merge.target_names() == ["uat", "pre", "test"]


def test_cli_dispatches_subcommand(tmp_path, monkeypatch, mock_argv, capsys):
    from pydantic_settings import CliApp

    from branchsmith.cli import CliState

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    with pytest.raises(SystemExit) as info:
        CliApp.run(CliState, cli_args=["targets", "--add", "prod"])

    assert info.value.code == 0
    assert "prod" in capsys.readouterr().out
