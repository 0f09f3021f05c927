# src/faultline/instrumentation/logging_hooks.py
"""Stdlib logging breadcrumbs.

Attaches a handler to the root logger that turns log records into
breadcrumbs. faultline's own loggers are skipped so the library never
records its diagnostics into the trail it is maintaining.
"""

from __future__ import annotations

import logging

import structlog

from faultline.contracts import Breadcrumb, BreadcrumbHint, BreadcrumbLevel, BreadcrumbType
from faultline.core.logging import is_library_logger
from faultline.instrumentation.patching import is_suppressed, suppressed
from faultline.instrumentation.protocols import BreadcrumbSink

logger = structlog.get_logger(__name__)


def _level_for(levelno: int) -> BreadcrumbLevel:
    if levelno >= logging.ERROR:
        return BreadcrumbLevel.ERROR
    if levelno >= logging.WARNING:
        return BreadcrumbLevel.WARNING
    if levelno >= logging.INFO:
        return BreadcrumbLevel.INFO
    return BreadcrumbLevel.DEBUG


class BreadcrumbLogHandler(logging.Handler):
    """logging.Handler that forwards records to a breadcrumb sink."""

    def __init__(self, sink: BreadcrumbSink, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        name = record.name
        if is_suppressed() or is_library_logger(name):
            return
        try:
            breadcrumb = Breadcrumb(
                type=BreadcrumbType.ERROR if record.levelno >= logging.ERROR else BreadcrumbType.LOGIC,
                category=f"log.{name}",
                level=_level_for(record.levelno),
                message=record.getMessage(),
                data={"logger": name, "function": record.funcName, "line": record.lineno},
            )
            error = record.exc_info[1] if record.exc_info else None
            with suppressed():
                self._sink(breadcrumb, BreadcrumbHint(event=record, error=error))
        except Exception:
            self.handleError(record)


class LoggingInstrumentation:
    """Record stdlib log records at ``level`` and above. Off by default."""

    _name = "logging"
    _toggle = "track_logging"

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self._handler: BreadcrumbLogHandler | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def toggle(self) -> str:
        return self._toggle

    @property
    def installed(self) -> bool:
        return self._handler is not None

    def install(self, sink: BreadcrumbSink) -> None:
        if self._handler is not None:
            return
        self._handler = BreadcrumbLogHandler(sink, self._level)
        logging.getLogger().addHandler(self._handler)
        logger.debug("Instrumentation installed", instrumentation=self._name)

    def uninstall(self) -> None:
        if self._handler is None:
            return
        logging.getLogger().removeHandler(self._handler)
        self._handler = None
        logger.debug("Instrumentation uninstalled", instrumentation=self._name)
