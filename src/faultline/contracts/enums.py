# src/faultline/contracts/enums.py
"""Status codes, levels and kinds shared across faultline subsystems.

All values are StrEnum so they serialize directly into collector payloads.
"""

from enum import StrEnum


class BreadcrumbType(StrEnum):
    """Kind of trail record."""

    DEFAULT = "default"
    REQUEST = "request"
    NAVIGATION = "navigation"
    UI = "ui"
    LOGIC = "logic"
    ERROR = "error"


class BreadcrumbLevel(StrEnum):
    """Severity of a trail record."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class TransactionSeverity(StrEnum):
    """Severity of a performance transaction.

    CRITICAL transactions bypass threshold filtering and sampling.
    """

    DEFAULT = "default"
    CRITICAL = "critical"


class FinishStatus(StrEnum):
    """Outcome of a finished span or transaction."""

    SUCCESS = "success"
    FAILURE = "failure"


class ConnectionState(StrEnum):
    """Lifecycle state of the collector connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


class SendOutcome(StrEnum):
    """Immediate result of Transport.send().

    SCHEDULED: connection is open, write will happen on the scheduler thread
    QUEUED: connection is not open, message waits in the outbound queue
    REJECTED: message was not accepted (unserializable or transport closed)
    """

    SCHEDULED = "scheduled"
    QUEUED = "queued"
    REJECTED = "rejected"

    @property
    def accepted(self) -> bool:
        """Whether the transport took ownership of the message."""
        return self is not SendOutcome.REJECTED


class ManagerState(StrEnum):
    """Lifecycle state of the BreadcrumbManager."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    DESTROYED = "destroyed"
