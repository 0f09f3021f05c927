# src/faultline/__init__.py
"""faultline: client-side error and performance reporting.

Captures a breadcrumb trail (explicit calls plus reversible hooks on httpx,
urllib, textual navigation/clicks and logging), measures transactions with
a finish-time sampling policy, and delivers everything to a collector
through a single reconnecting, order-preserving transport.

Usage:
    from faultline import FaultlineSettings, create_client

    client = create_client(FaultlineSettings(token=token, collector_endpoint=url, performance=True))
    txn = client.start_transaction("checkout")
    ...
    txn.finish()
"""

from faultline.client import FaultlineClient, create_client
from faultline.contracts import (
    Breadcrumb,
    BreadcrumbHint,
    BreadcrumbLevel,
    BreadcrumbType,
    FinishStatus,
    SendOutcome,
    TransactionSeverity,
    create_breadcrumb,
)
from faultline.core.config import FaultlineSettings, load_settings
from faultline.errors import EventRejectedError, FaultlineError, TransactionNotFoundError

__version__ = "0.3.0"

__all__ = [
    "Breadcrumb",
    "BreadcrumbHint",
    "BreadcrumbLevel",
    "BreadcrumbType",
    "EventRejectedError",
    "FaultlineClient",
    "FaultlineError",
    "FaultlineSettings",
    "FinishStatus",
    "SendOutcome",
    "TransactionNotFoundError",
    "TransactionSeverity",
    "__version__",
    "create_breadcrumb",
    "create_client",
    "load_settings",
]
