# src/faultline/contracts/__init__.py
"""Shared contracts: enums and data types that cross subsystem boundaries."""

from faultline.contracts.breadcrumbs import Breadcrumb, BreadcrumbHint, create_breadcrumb
from faultline.contracts.enums import (
    BreadcrumbLevel,
    BreadcrumbType,
    ConnectionState,
    FinishStatus,
    ManagerState,
    SendOutcome,
    TransactionSeverity,
)

__all__ = [
    "Breadcrumb",
    "BreadcrumbHint",
    "BreadcrumbLevel",
    "BreadcrumbType",
    "ConnectionState",
    "FinishStatus",
    "ManagerState",
    "SendOutcome",
    "TransactionSeverity",
    "create_breadcrumb",
]
