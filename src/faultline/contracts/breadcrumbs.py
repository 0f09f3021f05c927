# src/faultline/contracts/breadcrumbs.py
"""Breadcrumb (trail record) data contracts.

Breadcrumbs cross the boundary between the instrumentation hooks, the
BreadcrumbManager and whatever assembles the final report, so they live in
contracts rather than in the breadcrumbs package.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from faultline.contracts.enums import BreadcrumbLevel, BreadcrumbType


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    """A lightweight chronological marker of something that happened.

    Immutable once created. The BreadcrumbManager assigns ``timestamp`` when
    the caller leaves it as None.

    Attributes:
        timestamp: Wall-clock time in epoch milliseconds
        type: Kind of record (request, navigation, ui, ...)
        level: Severity
        category: Free-form dotted category (e.g. "httpx", "ui.click")
        message: Human-readable summary
        data: Structured details, sanitized before storage
    """

    timestamp: float | None = None
    type: BreadcrumbType = BreadcrumbType.DEFAULT
    level: BreadcrumbLevel = BreadcrumbLevel.INFO
    category: str | None = None
    message: str | None = None
    data: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        # Coerce plain strings ("request", "error") into the enums so that
        # hooks and user callbacks can use either form.
        object.__setattr__(self, "type", BreadcrumbType(self.type))
        object.__setattr__(self, "level", BreadcrumbLevel(self.level))

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a collector payload, omitting unset optional fields."""
        result: dict[str, Any] = {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "level": self.level.value,
        }
        if self.category is not None:
            result["category"] = self.category
        if self.message is not None:
            result["message"] = self.message
        if self.data is not None:
            result["data"] = dict(self.data)
        return result


@dataclass(frozen=True, slots=True)
class BreadcrumbHint:
    """Original objects behind an automatically captured breadcrumb.

    Passed to ``before_breadcrumb`` only; never stored.

    Attributes:
        event: UI or navigation event object, if any
        request: Outgoing request object (httpx.Request, urllib Request)
        response: Response object, if one was received
        error: Exception raised by the instrumented call, if any
        extra: Adapter-specific context
    """

    event: Any = None
    request: Any = None
    response: Any = None
    error: BaseException | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


def create_breadcrumb(
    message: str,
    *,
    type: BreadcrumbType | str = BreadcrumbType.DEFAULT,
    category: str | None = None,
    level: BreadcrumbLevel | str = BreadcrumbLevel.INFO,
    data: Mapping[str, Any] | None = None,
    timestamp: float | None = None,
) -> Breadcrumb:
    """Build a breadcrumb with sensible defaults for explicit user calls."""
    return Breadcrumb(
        timestamp=timestamp,
        type=BreadcrumbType(type),
        level=BreadcrumbLevel(level),
        category=category,
        message=message,
        data=data,
    )
