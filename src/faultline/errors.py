# src/faultline/errors.py
"""Faultline exception hierarchy.

Only two of these ever cross the public boundary into application code:
TransactionNotFoundError (programmer error when starting a span) and
EventRejectedError (the before_send filter refused an event). Everything
else is raised and caught inside the library and logged.
"""


class FaultlineError(Exception):
    """Base class for all faultline errors."""


class TransportError(FaultlineError):
    """Base class for connector/transport failures."""


class ConnectError(TransportError):
    """Raised by a connector when a connection cannot be established.

    Drives the transport reconnection policy. Never surfaced to callers.
    """


class ConnectionLostError(TransportError):
    """Raised by a connection when a write fails because the link is gone.

    The transport puts the message back at the head of its queue and
    reconnects.
    """


class DeliveryError(TransportError):
    """Raised by a connection when the collector refused a single message.

    The message is dropped and logged; the connection stays open.

    Attributes:
        status_code: Collector response status, if one was received
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class InstrumentationError(FaultlineError):
    """Raised when an instrumentation adapter cannot be installed.

    Recording failures inside an installed hook are logged instead; the
    instrumented call always proceeds unaffected.
    """

    def __init__(self, adapter_name: str, message: str) -> None:
        self.adapter_name = adapter_name
        self.message = message
        super().__init__(f"Instrumentation '{adapter_name}' failed: {message}")


class TransactionNotFoundError(FaultlineError, LookupError):
    """Raised when a span is started on an unknown or finished transaction."""

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction '{transaction_id}' not found or already finished")


class EventRejectedError(FaultlineError):
    """Raised to the caller of send_event when before_send discards the event.

    Rejected events are never retried.
    """


class PluginDiscoveryError(FaultlineError):
    """Raised when a connector or instrumentation plugin is invalid.

    Attributes:
        plugin_name: Name of the plugin (or registry) that failed
        message: Human-readable error description
    """

    def __init__(self, plugin_name: str, message: str) -> None:
        self.plugin_name = plugin_name
        self.message = message
        super().__init__(f"Plugin '{plugin_name}' failed: {message}")
