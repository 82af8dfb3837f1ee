"""Structured logging for highlighting passes.

structlog renders through stdlib logging handlers, one handler per
configured output. Each output picks its own format (console or JSON) and
level. Records emitted while a pass runs carry its pass_id, bound through
structlog's contextvars so resolution tasks spawned by the pass inherit it.

Console outputs go quiet while a Rich progress bar owns the terminal.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars, unbind_contextvars

if TYPE_CHECKING:
    from actionlens.config.models import LoggingConfig, LogOutputConfig

_CONSOLE_DESTINATIONS = frozenset({"stderr", "stdout"})


def get_pass_id() -> str | None:
    return get_contextvars().get("pass_id")


def set_pass_id(pass_id: str | None = None) -> str:
    """Bind a pass correlation ID (generated when omitted) to the current context."""
    pid = pass_id or uuid4().hex[:12]
    bind_contextvars(pass_id=pid)
    return pid


def clear_pass_id() -> None:
    unbind_contextvars("pass_id")


def _level(name: str | None, fallback: int = logging.INFO) -> int:
    if not name:
        return fallback
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else fallback


class ConsoleSuppressingFilter(logging.Filter):
    """Drops records while a Rich live display is on screen."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        from actionlens.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]


def _build_handler(
    output: LogOutputConfig,
    default_level: int,
    pre_chain: list[structlog.types.Processor],
) -> logging.Handler:
    handler: logging.Handler
    if output.destination in _CONSOLE_DESTINATIONS:
        # Resolved per call so a redirected sys.stderr (CliRunner, capsys) is used
        stream = getattr(sys, output.destination)
        handler = logging.StreamHandler(stream)
        handler.addFilter(ConsoleSuppressingFilter())
        colors = stream.isatty()
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a")
        colors = False

    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )
    handler.setLevel(_level(output.level, default_level))
    return handler


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and the root logger.

    Args:
        config: Full logging configuration. Wins over the simple parameters.
        json_format: Single stderr output rendered as JSON
        level: Level of the single stderr output
    """
    from actionlens.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    default_level = _level(config.level)
    processors = _shared_processors()

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must take effect on loggers already handed out
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(default_level)
    for output in config.outputs:
        root.addHandler(_build_handler(output, default_level, processors))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    return logger.bind(logger=name) if name else logger  # type: ignore[no-any-return]
