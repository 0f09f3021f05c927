# src/faultline/transport/protocols.py
"""Protocol definitions for collector connectors.

A connector knows how to reach one kind of collector endpoint; a connection
is one established link produced by it. The Transport owns the lifecycle:
it opens connections, writes serialized messages in FIFO order and closes
them.
"""

from typing import ClassVar, Protocol, runtime_checkable


@runtime_checkable
class ConnectionProtocol(Protocol):
    """An established link to the collector.

    Error handling:
        - send() MUST raise ConnectionLostError when the link is gone
          (the message will be retried after reconnecting)
        - send() MUST raise DeliveryError when the collector refused this
          one message (the message is dropped)
        - close() MUST be idempotent
    """

    def send(self, payload: str) -> None:
        """Write one serialized message.

        Always called from the scheduler thread, never concurrently with
        itself.

        Args:
            payload: JSON text of the message
        """
        ...

    def close(self) -> None:
        """Release the link. Safe to call multiple times."""
        ...


@runtime_checkable
class ConnectorProtocol(Protocol):
    """Factory for connections to a collector endpoint.

    Connectors are discovered via the faultline_get_connectors hook and
    selected by the scheme of the configured endpoint. They are constructed
    with the endpoint URL plus connector-specific keyword options.
    """

    schemes: ClassVar[tuple[str, ...]]

    @property
    def endpoint(self) -> str:
        """Collector endpoint this connector reaches."""
        ...

    def open(self) -> ConnectionProtocol:
        """Establish a connection.

        Raises:
            ConnectError: If the collector cannot be reached
        """
        ...
