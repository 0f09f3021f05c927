# src/faultline/instrumentation/protocols.py
"""Protocol definitions for instrumentation adapters.

An adapter wraps one ambient capability of the host (an HTTP client, the
screen stack, UI event dispatch, logging) and turns completed operations
into breadcrumbs passed to a sink.
"""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from faultline.contracts import Breadcrumb, BreadcrumbHint

# Receives each captured breadcrumb; BreadcrumbManager.add in practice
BreadcrumbSink = Callable[[Breadcrumb, BreadcrumbHint], Any]


@runtime_checkable
class InstrumentationAdapter(Protocol):
    """Protocol for instrumentation adapters.

    Lifecycle:
        1. Discovery: faultline_get_instrumentations hook returns adapter classes
        2. Instantiation: BreadcrumbManager creates instances with no arguments
        3. install(sink) when the adapter's toggle is enabled
        4. uninstall() on BreadcrumbManager.destroy()

    Error handling:
        - install() MUST raise InstrumentationError if it cannot wrap its target
        - Wrapped calls MUST behave exactly like the originals, including
          return values and exceptions; recording failures are logged
        - uninstall() MUST be idempotent
    """

    @property
    def name(self) -> str:
        """Unique adapter name."""
        ...

    @property
    def toggle(self) -> str:
        """Name of the settings flag that enables this adapter (e.g. track_fetch)."""
        ...

    @property
    def installed(self) -> bool:
        ...

    def install(self, sink: BreadcrumbSink) -> None:
        """Wrap the target and start recording into sink. No-op if installed."""
        ...

    def uninstall(self) -> None:
        """Restore the exact original behavior. No-op if not installed."""
        ...
