"""Tests for the logger, its sinks and level handling."""

import tempfile
from pathlib import Path

import pytest
from opentelemetry.proto.logs.v1 import logs_pb2

from branchsmith.core import log
from branchsmith.core.log import (
    LEVELS,
    ConsoleSink,
    FileSink,
    Logger,
    level_name,
    logger,
    setup_logger,
    shutdown_logger,
)


@pytest.fixture
def restore_test_logger():
    """Put the console-only test logger back afterwards."""
    yield
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "branchsmith-tests",
        session="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.mark.parametrize("num, name", [
    (logs_pb2.SEVERITY_NUMBER_INFO, "info"),
    (logs_pb2.SEVERITY_NUMBER_WARN, "warn"),
    (logs_pb2.SEVERITY_NUMBER_FATAL, "fatal"),
    (LEVELS["spew"], "spew"),
    (0, "unknown"),
])
def test_level_name(num, name):
    assert level_name(num) == name


def test_levels_are_ordered():
    order = ["spew", "trace", "debug", "info", "warn", "error", "fatal"]
    assert [LEVELS[n] for n in order] == sorted(LEVELS.values())


def test_sink_level_inherits_logger_level():
    configured = Logger(level="warn", console=ConsoleSink(level="debug"))
    assert configured.console.level == "debug"
    assert configured.file.level == "warn"


def test_proxy_is_noop_before_setup(monkeypatch):
    monkeypatch.setattr(log, "_current_logger", None)
    logger.info("ignored", key="value")
    with logger.span("ignored span"):
        pass


def test_setup_is_idempotent(restore_test_logger, tmp_path):
    first = setup_logger(tmp_path, "same", console=ConsoleSink(level="info"))
    second = setup_logger(tmp_path, "same", console=ConsoleSink(level="info"))
    third = setup_logger(tmp_path, "other", console=ConsoleSink(level="info"))
    assert first is second
    assert third is not first


def test_file_sink_writes_formatted_lines(restore_test_logger, tmp_path):
    setup_logger(
        log_root=tmp_path,
        session="run",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, level="debug"),
    )
    logger.info("Merged {branch}", branch="uat")
    logger.spew("too chatty")
    shutdown_logger()

    text = (tmp_path / "run" / "branchsmith.log").read_text(encoding="utf-8")
    assert "info  Merged uat" in text
    assert "branch='uat'" in text
    assert "too chatty" not in text
