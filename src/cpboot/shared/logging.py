"""Logging configuration for cpboot.

All events go through structlog into standard logging. Interactive runs
render them on stderr. With a log file, every event is also appended to
the file as one JSON object per line, so the output of a sudo-escalated
destroy survives after its terminal output has scrolled away.

Commands bind the environment they act on with bind_context; the bound
values are attached to every event logged afterwards.
"""

import logging
import sys
from pathlib import Path

import structlog

from ..errors import wrap_os_error

# Processors run for structlog events and for records from plain
# standard-library loggers alike.
_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def _formatter(renderer: structlog.types.Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def _file_handler(log_file: str | Path) -> logging.Handler:
    path = Path(log_file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise wrap_os_error("cannot open log file", path, e) from e
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    return handler


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure structlog and standard logging.

    Called once per command invocation; calling it again replaces the
    previous handlers.

    Args:
        level: Log level (debug, info, warning, error, critical)
        log_file: Also append JSON lines to this file, at info level or lower
        json_output: Render stderr output as JSON instead of console text

    Raises:
        StorageIOError: If the log file cannot be opened
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    console = logging.StreamHandler(sys.stderr)
    if json_output:
        console.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    else:
        console.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=False)))
    console.setLevel(log_level)
    handlers: list[logging.Handler] = [console]
    if log_file:
        file_handler = _file_handler(log_file)
        file_handler.setLevel(min(log_level, logging.INFO))
        handlers.append(file_handler)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(handler.level for handler in handlers))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_context(**values) -> None:
    """Attach values (e.g. command, environment) to every later event."""
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
