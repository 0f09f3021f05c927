# src/faultline/core/logging.py
"""Optional structlog setup for applications embedding faultline.

faultline modules log through ``structlog.get_logger(__name__)`` and never
configure logging themselves. An application that wants faultline's
diagnostics in a consistent format calls configure_logging() once.

Both structlog and stdlib records are rendered by one ProcessorFormatter
handler, so the host application's ``logging.getLogger()`` output and
faultline's own events share the same JSON or console format.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Loggers of libraries faultline drives or hooks. The HTTP connector and the
# httpx hooks would otherwise add connection noise for every delivery.
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "urllib3",
    "urllib3.connectionpool",
    "textual",
)

LIBRARY_LOGGER_PREFIX = "faultline"


def is_library_logger(name: str) -> bool:
    """True for faultline's own loggers (``faultline`` and ``faultline.*``)."""
    return name == LIBRARY_LOGGER_PREFIX or name.startswith(LIBRARY_LOGGER_PREFIX + ".")


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter always sets both keys
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    library_level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        json_output: Render JSON lines instead of console output
        level: Root log level
        library_level: Separate level for faultline's own loggers, e.g.
            "DEBUG" to see transport and sampling diagnostics while the
            application stays at INFO. Defaults to ``level``.
        stream: Output stream (sys.stderr by default)

    Raises:
        ValueError: If a level name is unknown
    """
    root_level = _resolve_level(level)
    faultline_level = _resolve_level(library_level) if library_level is not None else root_level
    stream = stream or sys.stderr

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        render_chain: list[Any] = [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render_chain = [_drop_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=stream.isatty())]

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ProcessorFormatter(processors=render_chain, foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(root_level)
    logging.getLogger(LIBRARY_LOGGER_PREFIX).setLevel(faultline_level)

    # Never more verbose than WARNING, never more verbose than root
    noisy_level = max(root_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)
