# src/faultline/instrumentation/__init__.py
"""Instrumentation adapters: reversible hooks that turn ambient operations into breadcrumbs.

Available adapters (settings flag in parentheses):
- HttpxInstrumentation (track_fetch): httpx.Client/AsyncClient requests
- UrllibInstrumentation (track_fetch): urllib.request openers
- NavigationInstrumentation (track_navigation): textual screen navigation
- ClickInstrumentation (track_clicks): textual click events
- LoggingInstrumentation (track_logging): stdlib log records

Plugin registration:
    Adapters are registered via the faultline_get_instrumentations hook.
    The BuiltinInstrumentationsPlugin in this module registers all built-in adapters.
"""

from faultline.hookspecs import hookimpl
from faultline.instrumentation.base import PatchingInstrumentation
from faultline.instrumentation.clicks import ClickInstrumentation
from faultline.instrumentation.httpx_hooks import HttpxInstrumentation
from faultline.instrumentation.logging_hooks import BreadcrumbLogHandler, LoggingInstrumentation
from faultline.instrumentation.navigation import NavigationInstrumentation
from faultline.instrumentation.patching import MethodPatch, is_suppressed, suppressed
from faultline.instrumentation.protocols import BreadcrumbSink, InstrumentationAdapter
from faultline.instrumentation.urllib_hooks import UrllibInstrumentation


class BuiltinInstrumentationsPlugin:
    """Plugin that registers built-in instrumentation adapters."""

    @hookimpl
    def faultline_get_instrumentations(self) -> list[type]:
        """Return built-in adapter classes."""
        return [
            HttpxInstrumentation,
            UrllibInstrumentation,
            NavigationInstrumentation,
            ClickInstrumentation,
            LoggingInstrumentation,
        ]


__all__ = [
    "BreadcrumbLogHandler",
    "BreadcrumbSink",
    "BuiltinInstrumentationsPlugin",
    "ClickInstrumentation",
    "HttpxInstrumentation",
    "InstrumentationAdapter",
    "LoggingInstrumentation",
    "MethodPatch",
    "NavigationInstrumentation",
    "PatchingInstrumentation",
    "UrllibInstrumentation",
    "is_suppressed",
    "suppressed",
]
