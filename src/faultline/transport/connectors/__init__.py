# src/faultline/transport/connectors/__init__.py
"""Built-in collector connectors.

Available connectors:
- HttpConnector: JSON POST to an http:// or https:// collector (httpx)
- ConsoleConnector: JSON lines on stdout/stderr for local debugging

Plugin registration:
    Connectors are registered via the faultline_get_connectors hook.
    The BuiltinConnectorsPlugin in this module registers all built-in connectors.
"""

from faultline.hookspecs import hookimpl
from faultline.transport.connectors.console import ConsoleConnection, ConsoleConnector
from faultline.transport.connectors.http import HttpConnection, HttpConnector


class BuiltinConnectorsPlugin:
    """Plugin that registers built-in connectors."""

    @hookimpl
    def faultline_get_connectors(self) -> list[type]:
        """Return built-in connector classes."""
        return [HttpConnector, ConsoleConnector]


__all__ = [
    "BuiltinConnectorsPlugin",
    "ConsoleConnection",
    "ConsoleConnector",
    "HttpConnection",
    "HttpConnector",
]
