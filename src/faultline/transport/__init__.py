# src/faultline/transport/__init__.py
"""Collector transport: reconnecting FIFO delivery and pluggable connectors.

Usage:
    from faultline.transport import Transport, create_connector

    transport = Transport(create_connector(settings.collector_endpoint), scheduler=scheduler)
    transport.connect()
    transport.send(message)
"""

from faultline.transport.factory import create_connector
from faultline.transport.protocols import ConnectionProtocol, ConnectorProtocol
from faultline.transport.transport import Transport

__all__ = [
    "ConnectionProtocol",
    "ConnectorProtocol",
    "Transport",
    "create_connector",
]
