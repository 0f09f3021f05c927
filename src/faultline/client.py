# src/faultline/client.py
"""FaultlineClient: wires transport, breadcrumbs and performance together.

The client is the configuration surface of the library. It owns one
scheduler, one transport, one BreadcrumbManager and, when performance
monitoring is enabled, one PerformanceMonitor; everything else receives
these explicitly.
"""

from __future__ import annotations

import atexit
import threading
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from faultline.breadcrumbs import BreadcrumbManager
from faultline.contracts import Breadcrumb, BreadcrumbHint, SendOutcome, TransactionSeverity
from faultline.core.clock import Clock, SystemClock
from faultline.core.config import FaultlineSettings, describe_settings
from faultline.core.scheduler import Scheduler, ThreadScheduler
from faultline.errors import EventRejectedError
from faultline.performance import PerformanceMonitor, Transaction
from faultline.transport import Transport, create_connector

if TYPE_CHECKING:
    from faultline.instrumentation.protocols import InstrumentationAdapter
    from faultline.transport.protocols import ConnectorProtocol

logger = structlog.get_logger(__name__)

DEFAULT_CATCHER_TYPE = "errors/python"


class FaultlineClient:
    """Client-side error and performance reporting.

    Example:
        >>> settings = FaultlineSettings(token="...", collector_endpoint="https://collector.example.com/ingest")
        >>> with FaultlineClient(settings) as client:
        ...     client.add_breadcrumb({"message": "Order placed", "type": "logic"})
        ...     client.send_event({"title": "ValueError: bad quantity"})
    """

    def __init__(
        self,
        settings: FaultlineSettings,
        *,
        connector: ConnectorProtocol | None = None,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        plugins: Iterable[Any] = (),
        adapters: Sequence[InstrumentationAdapter] | None = None,
        register_atexit: bool = True,
    ) -> None:
        """Build and connect every component.

        Args:
            settings: Validated configuration
            connector: Overrides the connector resolved from collector_endpoint
            scheduler: Runs all background work (a ThreadScheduler by default);
                the client closes it on close()
            clock: Time source (SystemClock by default)
            plugins: Extra pluggy plugins (connectors, instrumentations)
            adapters: Instrumentation adapters to use instead of discovery
            register_atexit: Close the client at interpreter exit

        Raises:
            PluginDiscoveryError: If no connector serves the endpoint scheme
        """
        plugins = tuple(plugins)
        self._settings = settings
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or ThreadScheduler()
        self._lock = threading.Lock()
        self._closed = False

        if connector is None:
            connector = create_connector(
                settings.collector_endpoint,
                plugins,
                timeout=settings.request_timeout_seconds,
            )

        self.transport = Transport(
            connector,
            scheduler=self._scheduler,
            reconnection_attempts=settings.reconnection_attempts,
            reconnection_timeout_ms=settings.reconnection_timeout_ms,
            max_queue_size=settings.max_queue_size,
        )

        self.breadcrumbs = BreadcrumbManager(clock=self._clock, plugins=plugins)
        self.breadcrumbs.init_from_settings(settings, adapters=adapters)

        self.performance: PerformanceMonitor | None = None
        if settings.performance:
            self.performance = PerformanceMonitor(
                self.transport,
                token=settings.token,
                scheduler=self._scheduler,
                clock=self._clock,
                sample_rate=settings.sample_rate,
                threshold_ms=settings.threshold_ms,
                critical_duration_threshold_ms=settings.critical_duration_threshold_ms,
                batch_interval_ms=settings.batch_interval_ms,
                debug=settings.debug,
            )

        self.transport.connect()

        self._atexit_registered = register_atexit
        if register_atexit:
            atexit.register(self.close)

        logger.debug("Faultline client started", **describe_settings(settings))

    @property
    def settings(self) -> FaultlineSettings:
        return self._settings

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Breadcrumbs
    # ------------------------------------------------------------------

    def add_breadcrumb(
        self,
        breadcrumb: Breadcrumb | Mapping[str, Any],
        hint: BreadcrumbHint | None = None,
    ) -> Breadcrumb | None:
        return self.breadcrumbs.add(breadcrumb, hint)

    def get_breadcrumbs(self) -> list[Breadcrumb]:
        return self.breadcrumbs.get()

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def start_transaction(
        self,
        name: str,
        severity: TransactionSeverity | str = TransactionSeverity.DEFAULT,
    ) -> Transaction:
        """Start a transaction.

        With performance monitoring disabled the transaction still works
        but is never reported.
        """
        if self.performance is None:
            logger.debug("Performance monitoring disabled - transaction not tracked", transaction=name)
            return Transaction(name, severity, clock=self._clock)
        return self.performance.start_transaction(name, severity)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def send_event(self, payload: Mapping[str, Any], catcher_type: str = DEFAULT_CATCHER_TYPE) -> SendOutcome:
        """Attach the breadcrumb trail and release, filter, and send an event.

        Args:
            payload: Event fields assembled by the caller (title, backtrace, ...)
            catcher_type: Collector routing key

        Returns:
            Transport outcome

        Raises:
            EventRejectedError: If before_send returned None
        """
        event = dict(payload)
        if self._settings.release is not None:
            event.setdefault("release", self._settings.release)
        if "breadcrumbs" not in event:
            trail = [breadcrumb.to_dict() for breadcrumb in self.breadcrumbs.get()]
            if trail:
                event["breadcrumbs"] = trail

        before_send = self._settings.before_send
        if before_send is not None:
            try:
                filtered = before_send(event)
            except Exception as e:
                logger.error("before_send raised - event sent unfiltered", error=str(e), exc_info=True)
                filtered = event
            if filtered is None:
                raise EventRejectedError("Event rejected by before_send")
            event = dict(filtered)

        return self.transport.send(
            {
                "token": self._settings.token,
                "catcherType": catcher_type,
                "payload": event,
            }
        )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self, timeout_seconds: float = 2.0) -> None:
        """Flush performance data, remove hooks and shut down. Idempotent.

        Order: performance destroy (final flush), breadcrumb destroy,
        transport close after already-queued drains, scheduler close.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if self.performance is not None:
            self.performance.destroy()
        self.breadcrumbs.destroy()
        # Queued behind any drain the final flush scheduled
        self._scheduler.call_soon(self.transport.close)
        self._scheduler.close(timeout_seconds)
        if not self.transport.closed:
            # Scheduler could not run it in time
            self.transport.close()

        if self._atexit_registered:
            atexit.unregister(self.close)
        logger.debug("Faultline client closed")

    def __enter__(self) -> FaultlineClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def create_client(settings: FaultlineSettings | Mapping[str, Any], **kwargs: Any) -> FaultlineClient:
    """Create a client from settings or a mapping of settings fields.

    Raises:
        ValidationError: If a mapping fails validation
    """
    if not isinstance(settings, FaultlineSettings):
        settings = FaultlineSettings(**settings)
    return FaultlineClient(settings, **kwargs)
