"""Logger with composable output sinks, backed by logfire."""

from __future__ import annotations

import contextlib
from abc import abstractmethod
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from branchsmith.core.base import BaseConfig

_current_logger: Logger | None = None
_current_key: tuple | None = None


class _LoggerProxy:
    """Forwards attribute access to the configured Logger.

    Before setup_logger() has run every logging call is a no-op, so
    modules can log at import time or from tests that never configure
    logging.
    """

    def __getattr__(self, name):
        if _current_logger is None:
            def _noop(*args, **kwargs):  # noqa: ARG001
                return contextlib.nullcontext()
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


# Imported everywhere as `from branchsmith.core.log import logger`
logger = _LoggerProxy()

# Level names mapped to OpenTelemetry severity numbers
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}


def level_name(level_num: int) -> str:
    """Return the most severe level name whose threshold
    level_num reaches."""
    for name in ('fatal', 'error', 'warn', 'info', 'debug', 'trace', 'spew'):
        if level_num >= LEVELS[name]:
            return name
    return "unknown"


class LevelFilteringExporter(SpanExporter):
    """Span exporter that drops spans below a minimum level."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._min_severity = LEVELS.get(
            (min_level or 'info').lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if kept:
            return self._exporter.export(kept)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """Base class for log output sinks.

    Each sink is an independent destination. Sinks are closed through
    the BaseCloseable cascade when the Logger closes.
    """

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Log level for this sink; inherits Logger.level when unset. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        ),
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "Line template. Fields: timestamp, level, message, "
            "location, function"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    # Attributes that are already part of the template or are
    # instrumentation internals
    _internal_keys = frozenset({
        'code.filepath', 'code.lineno', 'code.function',
        'logfire.msg', 'logfire.level_num', 'logfire.span_type',
        'logfire.msg_template', 'logfire.json_schema',
    })

    def _format_span(self, span) -> str:
        """Render one span as a single log line."""
        from datetime import UTC, datetime

        attrs = span.attributes or {}
        if not self.format_template:
            return span.to_json() + '\n'

        filepath = attrs.get("code.filepath", "")
        data = {
            'timestamp': datetime.fromtimestamp(
                span.start_time / 1e9, tz=UTC
            ),
            'level': level_name(attrs.get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            )),
            'message': attrs.get("logfire.msg", span.name),
            'location': (
                f"{filepath}:{attrs.get('code.lineno', '')}"
                if filepath else ""
            ),
            'function': attrs.get("code.function", ""),
        }
        try:
            line = self.format_template.format(**data)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = {
            key: value for key, value in attrs.items()
            if key not in self._internal_keys
            and not key.startswith(('otel.', 'telemetry.', 'service.'))
        }
        if extra:
            line += " │ " + ' '.join(
                f"{k}={v!r}" for k, v in sorted(extra.items())
            )
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, session: str):
        """Create the OpenTelemetry span processor for this sink, or
        None when logfire handles the sink itself."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Terminal output, rendered by logfire's console exporter."""

    verbose: bool = Field(
        default=False,
        description="Show call site and attributes on console lines",
    )
    colors: str = Field(
        default="auto",
        description="Color mode: auto, always, never",
    )

    def create_processor(self, log_root: Path, session: str):
        return None


class FileSink(Sink):
    """Plain-text log file."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{session}/branchsmith.log",
        description="Log file path template",
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, session: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(self.path.format(log_root=log_root, session=session))
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered so a crash loses at most the current line
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self._format_span
        )
        return BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level)
        )

    def close(self):
        # Flush the processor before the file goes away
        super().close()
        if self._file and not self._file.closed:
            self._file.close()


class LogfireSink(Sink):
    """logfire.dev cloud export."""

    enabled: bool = Field(
        default=False,
        description="Send telemetry to logfire.dev",
    )
    token: str | None = Field(
        default=None,
        description="API token (or use LOGFIRE_TOKEN env var)",
    )

    def create_processor(self, log_root: Path, session: str):
        return None


class Logger(BaseConfig):
    """Logger with composable output sinks.

    Closing the Logger closes every sink through the BaseCloseable
    cascade.
    """

    level: str = Field(
        default="info",
        description=(
            "Default level for all sinks. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        ),
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, session: str):
        """Create processors for the enabled sinks and configure
        logfire."""
        import logfire
        from logfire import ConsoleOptions

        for sink in (self.console, self.file, self.logfire):
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, session)

        processors = [
            sink._processor for sink in (self.file,)
            if sink.enabled and sink._processor
        ]

        console = (
            ConsoleOptions(
                min_log_level=self.console.level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=False,
                show_project_link=False,
            )
            if self.console.enabled
            else False
        )

        logfire.configure(
            service_name="branchsmith",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=processors or None,
        )

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        import logfire
        logfire.log(
            level='trace', msg_template=msg, attributes=kwargs or None
        )

    def spew(self, msg: str, **kwargs):
        """Below trace: subprocess chatter and raw git output."""
        import logfire
        logfire.log(
            level=LEVELS['spew'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self.warn(msg, **kwargs)

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Span context manager:

            with logger.span("merge {target}", target=target):
                ...
        """
        import logfire
        return logfire.span(msg, **kwargs)

    def log(self, level: str, msg: str, **kwargs):
        import logfire
        logfire.log(level, msg, attributes=kwargs or None)


def setup_logger(
    log_root: Path,
    session: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Initialize the global logger singleton.

    Called by the CLI once configuration has loaded; tests call it
    directly with console-only sinks.

    Args:
        log_root: Root directory for log files
        session: Name of the current session (used in file paths)
        level: Default level for sinks that do not set their own
        console: Console sink config (or None for defaults)
        file: File sink config (or None for defaults)
        logfire: logfire.dev sink config (or None for defaults)

    Returns:
        The initialized global Logger
    """
    global _current_logger, _current_key

    candidate = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    # Reloading an unchanged configuration keeps the running logger
    key = (str(log_root), session, candidate.model_dump_json())
    if _current_logger is not None and key == _current_key:
        return _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = candidate
    _current_key = key
    _current_logger.setup(log_root, session)
    return _current_logger


def shutdown_logger() -> None:
    """Close the global logger; the proxy becomes a no-op again."""
    global _current_logger, _current_key

    if _current_logger is not None:
        _current_logger.close()
    _current_logger = None
    _current_key = None
