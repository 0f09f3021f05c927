# src/faultline/transport/factory.py
"""Resolve a collector endpoint to a configured connector."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

import structlog

from faultline.discovery import discover_connectors
from faultline.errors import PluginDiscoveryError
from faultline.transport.protocols import ConnectorProtocol

logger = structlog.get_logger(__name__)


def create_connector(endpoint: str, plugins: Iterable[Any] = (), **options: Any) -> ConnectorProtocol:
    """Create the connector serving the scheme of ``endpoint``.

    Args:
        endpoint: Collector URL (e.g. https://collector.example.com/ingest)
        plugins: Additional plugin objects providing faultline_get_connectors
        **options: Connector-specific keyword options (timeout, headers, ...)

    Returns:
        Connector instance, not yet connected

    Raises:
        PluginDiscoveryError: If no connector serves the scheme, or plugins
            are invalid
    """
    scheme = urlsplit(endpoint).scheme.lower()
    registry = discover_connectors(plugins)
    if scheme not in registry:
        available = ", ".join(sorted(registry)) or "none"
        raise PluginDiscoveryError(
            "connectors",
            f"No connector for endpoint scheme '{scheme}' ({endpoint!r}). Available: {available}",
        )

    connector_class = registry[scheme]
    logger.debug("Connector resolved", scheme=scheme, connector=connector_class.__name__)
    connector: ConnectorProtocol = connector_class(endpoint, **options)  # type: ignore[call-arg]
    return connector
