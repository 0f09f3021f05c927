# src/faultline/breadcrumbs/manager.py
"""BreadcrumbManager: the breadcrumb trail and the hooks that feed it.

The manager is an ordinary object. An application creates one (normally
through FaultlineClient), initializes it once and passes it to whatever
needs to read the trail; there is no global instance.

Lifecycle:
    UNINITIALIZED --init()--> INITIALIZED --destroy()--> DESTROYED
                                   ^                         |
                                   +---------init()----------+

add() pipeline, in order:
    1. Assign a timestamp if the breadcrumb has none
    2. before_breadcrumb(breadcrumb, hint): None discards the breadcrumb,
       a Breadcrumb replaces it, a mapping overrides individual fields
    3. Sanitize message and data (size limits, non-serializable values)
    4. Append to the ring buffer, evicting the oldest entry when full
"""

from __future__ import annotations

import copy
import dataclasses
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from faultline.breadcrumbs.buffer import BreadcrumbBuffer
from faultline.contracts import Breadcrumb, BreadcrumbHint, ManagerState
from faultline.core.clock import Clock, SystemClock
from faultline.core.sanitizer import Sanitizer
from faultline.discovery import discover_instrumentations
from faultline.errors import InstrumentationError

if TYPE_CHECKING:
    from faultline.core.config import FaultlineSettings
    from faultline.instrumentation.protocols import InstrumentationAdapter

logger = structlog.get_logger(__name__)

DEFAULT_MAX_BREADCRUMBS = 15

BeforeBreadcrumb = Callable[[Breadcrumb, BreadcrumbHint], Breadcrumb | Mapping[str, Any] | None]


class BreadcrumbManager:
    """Owns the breadcrumb ring buffer and the instrumentation adapters.

    Thread Safety:
        add(), get() and clear() may be called from any thread; buffer and
        lifecycle state are guarded by an RLock. before_breadcrumb runs
        outside the lock, on the thread that produced the breadcrumb.

    Example:
        >>> manager = BreadcrumbManager()
        >>> manager.init(max_breadcrumbs=30, track_clicks=False)
        >>> manager.add(create_breadcrumb("Cart emptied", type="logic"))
        >>> trail = [b.to_dict() for b in manager.get()]
        >>> manager.destroy()
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        sanitizer: Sanitizer | None = None,
        plugins: Iterable[Any] = (),
    ) -> None:
        """Create an uninitialized manager.

        Args:
            clock: Timestamp source (SystemClock by default)
            sanitizer: Applied to message and data before storage
            plugins: Extra plugin objects providing faultline_get_instrumentations
        """
        self._clock = clock or SystemClock()
        self._sanitizer = sanitizer or Sanitizer()
        self._plugins = tuple(plugins)

        self._lock = threading.RLock()
        self._state = ManagerState.UNINITIALIZED
        self._buffer = BreadcrumbBuffer(DEFAULT_MAX_BREADCRUMBS)
        self._before_breadcrumb: BeforeBreadcrumb | None = None
        self._adapters: list[InstrumentationAdapter] = []

        self._discarded_count = 0
        self._filter_failures = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def adapters(self) -> list[InstrumentationAdapter]:
        """Installed adapters, in installation order."""
        return list(self._adapters)

    def init(
        self,
        *,
        max_breadcrumbs: int = DEFAULT_MAX_BREADCRUMBS,
        track_fetch: bool = True,
        track_navigation: bool = True,
        track_clicks: bool = True,
        track_logging: bool = False,
        before_breadcrumb: BeforeBreadcrumb | None = None,
        adapters: Sequence[InstrumentationAdapter] | None = None,
    ) -> None:
        """Configure the trail and install the enabled hooks.

        A second init() while initialized is ignored with a warning: the
        first configuration stays in effect until destroy().

        Args:
            max_breadcrumbs: Ring buffer capacity; invalid values fall back to 15
            track_fetch: Install outbound request hooks
            track_navigation: Install navigation hooks
            track_clicks: Install click hooks
            track_logging: Install the stdlib logging handler
            before_breadcrumb: Optional filter applied to every breadcrumb
            adapters: Adapter instances to use instead of plugin discovery
                (still subject to the track_* flags)
        """
        with self._lock:
            if self._state is ManagerState.INITIALIZED:
                logger.warning("BreadcrumbManager already initialized - init() ignored")
                return

            if type(max_breadcrumbs) is not int or max_breadcrumbs < 1:
                logger.error(
                    "Invalid max_breadcrumbs - using default",
                    max_breadcrumbs=max_breadcrumbs,
                    default=DEFAULT_MAX_BREADCRUMBS,
                )
                max_breadcrumbs = DEFAULT_MAX_BREADCRUMBS

            self._buffer.resize(max_breadcrumbs)
            self._before_breadcrumb = before_breadcrumb

            toggles = {
                "track_fetch": track_fetch,
                "track_navigation": track_navigation,
                "track_clicks": track_clicks,
                "track_logging": track_logging,
            }
            candidates = list(adapters) if adapters is not None else self._discover_adapters()
            self._adapters = self._install_adapters(candidates, toggles)
            self._state = ManagerState.INITIALIZED

        logger.debug(
            "BreadcrumbManager initialized",
            max_breadcrumbs=max_breadcrumbs,
            adapters=[adapter.name for adapter in self._adapters],
            has_before_breadcrumb=before_breadcrumb is not None,
        )

    def init_from_settings(
        self,
        settings: FaultlineSettings,
        *,
        adapters: Sequence[InstrumentationAdapter] | None = None,
    ) -> None:
        """init() with the breadcrumb options of a FaultlineSettings."""
        self.init(
            max_breadcrumbs=settings.max_breadcrumbs,
            track_fetch=settings.track_fetch,
            track_navigation=settings.track_navigation,
            track_clicks=settings.track_clicks,
            track_logging=settings.track_logging,
            before_breadcrumb=settings.before_breadcrumb,
            adapters=adapters,
        )

    def destroy(self) -> None:
        """Uninstall every hook and clear the trail.

        The manager can be initialized again afterwards.
        """
        with self._lock:
            if self._state is not ManagerState.INITIALIZED:
                return
            for adapter in reversed(self._adapters):
                try:
                    adapter.uninstall()
                except Exception as e:
                    logger.error("Failed to uninstall instrumentation", instrumentation=adapter.name, error=str(e))
            self._adapters = []
            self._buffer.clear()
            self._before_breadcrumb = None
            self._state = ManagerState.DESTROYED
        logger.debug("BreadcrumbManager destroyed")

    def _discover_adapters(self) -> list[InstrumentationAdapter]:
        registry = discover_instrumentations(self._plugins)
        return [adapter_class() for adapter_class in registry.values()]

    def _install_adapters(
        self,
        candidates: list[InstrumentationAdapter],
        toggles: Mapping[str, bool],
    ) -> list[InstrumentationAdapter]:
        installed: list[InstrumentationAdapter] = []
        for adapter in candidates:
            # Third-party adapters with their own flag are on once registered
            if not toggles.get(adapter.toggle, True):
                continue
            try:
                adapter.install(self.add)
            except InstrumentationError as e:
                logger.warning("Instrumentation not installed", instrumentation=adapter.name, error=str(e))
                continue
            except Exception as e:
                logger.error(
                    "Instrumentation failed during install",
                    instrumentation=adapter.name,
                    error=str(e),
                    exc_info=True,
                )
                continue
            installed.append(adapter)
        return installed

    # ------------------------------------------------------------------
    # Trail
    # ------------------------------------------------------------------

    def add(
        self,
        breadcrumb: Breadcrumb | Mapping[str, Any],
        hint: BreadcrumbHint | None = None,
    ) -> Breadcrumb | None:
        """Run a breadcrumb through the pipeline and store it.

        Works in every lifecycle state. Never raises.

        Args:
            breadcrumb: Breadcrumb, or a mapping of Breadcrumb fields
            hint: Original objects for before_breadcrumb

        Returns:
            The stored breadcrumb, or None if it was discarded
        """
        if not isinstance(breadcrumb, Breadcrumb):
            try:
                breadcrumb = Breadcrumb(**breadcrumb)
            except (TypeError, ValueError) as e:
                logger.warning("Invalid breadcrumb discarded", error=str(e))
                return None

        if breadcrumb.timestamp is None:
            breadcrumb = dataclasses.replace(breadcrumb, timestamp=self._clock.now_ms())

        filtered = self._apply_filter(breadcrumb, hint or BreadcrumbHint())
        if filtered is None:
            with self._lock:
                self._discarded_count += 1
            return None

        stored = self._sanitize(filtered)
        with self._lock:
            self._buffer.append(stored)
        return _detached(stored)

    def get(self) -> list[Breadcrumb]:
        """Snapshot of the trail, oldest to newest.

        Each record carries its own copy of data, so callers cannot edit
        the stored trail through it.
        """
        with self._lock:
            snapshot = self._buffer.snapshot()
        return [_detached(breadcrumb) for breadcrumb in snapshot]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def _apply_filter(self, breadcrumb: Breadcrumb, hint: BreadcrumbHint) -> Breadcrumb | None:
        before_breadcrumb = self._before_breadcrumb
        if before_breadcrumb is None:
            return breadcrumb

        try:
            result = before_breadcrumb(breadcrumb, hint)
        except Exception as e:
            # A broken filter must not cost the application its trail
            with self._lock:
                self._filter_failures += 1
            logger.error("before_breadcrumb raised - breadcrumb kept unfiltered", error=str(e), exc_info=True)
            return breadcrumb

        if result is None:
            return None
        if isinstance(result, Breadcrumb):
            replaced = result
        elif isinstance(result, Mapping):
            try:
                replaced = dataclasses.replace(breadcrumb, **dict(result))
            except (TypeError, ValueError) as e:
                logger.warning("before_breadcrumb returned invalid fields - ignored", error=str(e))
                return breadcrumb
        else:
            logger.warning(
                "before_breadcrumb returned unsupported value - ignored",
                returned_type=type(result).__name__,
            )
            return breadcrumb

        if replaced.timestamp is None:
            replaced = dataclasses.replace(replaced, timestamp=breadcrumb.timestamp)
        return replaced

    def _sanitize(self, breadcrumb: Breadcrumb) -> Breadcrumb:
        message = breadcrumb.message
        if message is not None:
            message = self._sanitizer.sanitize(str(message))

        data = breadcrumb.data
        if data is not None:
            sanitized = self._sanitizer.sanitize(data)
            # A mapping may collapse to "<big object>"; keep data a mapping
            data = sanitized if isinstance(sanitized, dict) else {"value": sanitized}

        if message is breadcrumb.message and data is breadcrumb.data:
            return breadcrumb
        return dataclasses.replace(breadcrumb, message=message, data=data)

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of trail health.

        Returns:
            Dictionary containing:
            - state: Lifecycle state
            - size: Breadcrumbs currently held
            - capacity: Ring buffer capacity
            - evicted: Breadcrumbs evicted by newer ones
            - discarded: Breadcrumbs discarded by before_breadcrumb
            - filter_failures: before_breadcrumb exceptions
            - adapters: Names of installed adapters
        """
        with self._lock:
            return {
                "state": self._state.value,
                "size": len(self._buffer),
                "capacity": self._buffer.max_size,
                "evicted": self._buffer.dropped_count,
                "discarded": self._discarded_count,
                "filter_failures": self._filter_failures,
                "adapters": [adapter.name for adapter in self._adapters],
            }


def _detached(breadcrumb: Breadcrumb) -> Breadcrumb:
    # Stored data holds only sanitized dicts, lists and scalars
    if breadcrumb.data is None:
        return breadcrumb
    return dataclasses.replace(breadcrumb, data=copy.deepcopy(breadcrumb.data))
