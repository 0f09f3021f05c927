# src/faultline/transport/transport.py
"""Reconnecting transport: the single chokepoint to the collector.

The Transport owns one logical connection, a FIFO outbound queue and the
reconnection policy:

1. send() serializes the message and appends it to the queue, always
2. While OPEN, a drain task on the scheduler writes the queue head-first
3. While DISCONNECTED, send() starts a connection attempt
4. A failed attempt spends one of the remaining attempts and, if any are
   left, schedules exactly one retry after reconnection_timeout_ms
5. Once attempts are exhausted, messages accumulate until reconnect()
6. A successful open restores the attempt budget and drains the backlog

Because every message goes through the same queue, messages queued during
a disconnection are always written before messages sent after the
reconnect, and a message whose write lost the connection is put back at
the head.

Thread Safety:
    send(), connect(), reconnect() and close() may be called from any
    thread. Connector I/O only ever runs on the scheduler thread, outside
    the lock. Queue and state are guarded by _lock.
"""

from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Callable
from typing import Any

import structlog

from faultline.contracts import ConnectionState, SendOutcome
from faultline.core.scheduler import Scheduler, TaskHandle
from faultline.errors import ConnectionLostError, DeliveryError
from faultline.transport.protocols import ConnectionProtocol, ConnectorProtocol

logger = structlog.get_logger(__name__)


class Transport:
    """FIFO, reconnecting, fire-and-forget message transport.

    Failure handling:
    - Connect failures drive the reconnection policy; never raised
    - ConnectionLostError re-queues the message at the head and reconnects
    - DeliveryError drops that one message with a warning
    - With max_queue_size set, the oldest queued message is evicted on
      overflow (aggregate logging every _LOG_INTERVAL evictions)

    Example:
        >>> transport = Transport(HttpConnector(url), scheduler=ThreadScheduler())
        >>> transport.connect()
        >>> transport.send({"token": token, "catcherType": "errors/python", "payload": {...}})
        >>> transport.close()
    """

    _LOG_INTERVAL = 100

    def __init__(
        self,
        connector: ConnectorProtocol,
        *,
        scheduler: Scheduler,
        reconnection_attempts: int = 5,
        reconnection_timeout_ms: float = 10_000.0,
        max_queue_size: int | None = None,
        on_open: Callable[[], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        """Initialize a disconnected transport.

        Args:
            connector: Opens connections to the collector
            scheduler: Runs connection attempts, retries and drains
            reconnection_attempts: Automatic connection attempts before giving
                up; 0 disables automatic connection (only reconnect() connects)
            reconnection_timeout_ms: Delay before each automatic retry
            max_queue_size: Optional cap on queued messages (None = unbounded)
            on_open: Called on the scheduler thread after each successful open
            on_close: Called on the scheduler thread when an open connection is lost

        Raises:
            ValueError: If numeric arguments are out of range
        """
        if reconnection_attempts < 0:
            raise ValueError(f"reconnection_attempts must be >= 0, got {reconnection_attempts}")
        if reconnection_timeout_ms <= 0:
            raise ValueError(f"reconnection_timeout_ms must be > 0, got {reconnection_timeout_ms}")
        if max_queue_size is not None and max_queue_size < 1:
            raise ValueError(f"max_queue_size must be >= 1, got {max_queue_size}")

        self._connector = connector
        self._scheduler = scheduler
        self._reconnection_attempts = reconnection_attempts
        self._reconnection_timeout_ms = reconnection_timeout_ms
        self._max_queue_size = max_queue_size
        self._on_open = on_open
        self._on_close = on_close

        self._lock = threading.Lock()
        self._queue: deque[str] = deque()
        self._state = ConnectionState.DISCONNECTED
        self._connection: ConnectionProtocol | None = None
        self._remaining_attempts = reconnection_attempts
        self._retry_handle: TaskHandle | None = None
        self._drain_scheduled = False
        self._closed = False

        # Health metrics
        self._messages_sent = 0
        self._messages_rejected = 0
        self._messages_evicted = 0
        self._delivery_failures = 0
        self._connect_failures = 0
        self._connections_opened = 0
        self._last_logged_eviction_count = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def remaining_attempts(self) -> int:
        return self._remaining_attempts

    @property
    def queued(self) -> int:
        """Number of messages waiting to be written."""
        with self._lock:
            return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: Any) -> SendOutcome:
        """Submit a message for delivery. Never blocks on I/O, never raises.

        Args:
            message: JSON-serializable message

        Returns:
            SCHEDULED if the connection is open, QUEUED if the message waits
            for a connection, REJECTED if it could not be accepted
        """
        try:
            payload = json.dumps(message, allow_nan=False)
        except (TypeError, ValueError) as e:
            # ValueError: NaN/Infinity or circular reference
            logger.error("Message is not serializable - rejected", error=str(e))
            with self._lock:
                self._messages_rejected += 1
            return SendOutcome.REJECTED

        with self._lock:
            if self._closed:
                self._messages_rejected += 1
                logger.debug("Transport closed - message rejected")
                return SendOutcome.REJECTED

            self._enqueue_locked(payload)

            if self._state is ConnectionState.OPEN:
                self._schedule_drain_locked()
                return SendOutcome.SCHEDULED
            if self._can_auto_connect_locked():
                self._begin_connect_locked()
            return SendOutcome.QUEUED

    def connect(self) -> None:
        """Start the initial connection attempt if none is in progress."""
        with self._lock:
            if self._can_auto_connect_locked():
                self._begin_connect_locked()

    def reconnect(self) -> None:
        """Force a connection attempt now.

        Cancels a pending retry timer and works even after the automatic
        attempts are exhausted. No-op while open or connecting.
        """
        with self._lock:
            if self._closed:
                logger.warning("reconnect() called on closed transport")
                return
            if self._state is not ConnectionState.DISCONNECTED:
                return
            if self._retry_handle is not None:
                self._retry_handle.cancel()
                self._retry_handle = None
            self._begin_connect_locked()

    def close(self) -> None:
        """Close the connection and stop retrying. Idempotent.

        Messages still queued are dropped (delivery is best-effort); later
        sends are rejected.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._state = ConnectionState.CLOSING
            if self._retry_handle is not None:
                self._retry_handle.cancel()
                self._retry_handle = None
            connection = self._connection
            self._connection = None
            undelivered = len(self._queue)
            self._queue.clear()

        if connection is not None:
            self._close_connection(connection)

        with self._lock:
            self._state = ConnectionState.DISCONNECTED

        if undelivered:
            logger.warning("Transport closed with undelivered messages", undelivered=undelivered)
        logger.debug("Transport closed", endpoint=self._connector.endpoint)

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of transport health for monitoring.

        Returns:
            Dictionary containing:
            - state: Current connection state
            - queued: Messages waiting to be written
            - messages_sent: Messages written successfully
            - messages_rejected: Messages refused by send()
            - messages_evicted: Messages evicted by the queue cap
            - delivery_failures: Messages the collector refused
            - connect_failures: Failed connection attempts
            - connections_opened: Successful connection attempts
            - remaining_attempts: Automatic attempts left
        """
        with self._lock:
            return {
                "state": self._state.value,
                "queued": len(self._queue),
                "messages_sent": self._messages_sent,
                "messages_rejected": self._messages_rejected,
                "messages_evicted": self._messages_evicted,
                "delivery_failures": self._delivery_failures,
                "connect_failures": self._connect_failures,
                "connections_opened": self._connections_opened,
                "remaining_attempts": self._remaining_attempts,
            }

    # ------------------------------------------------------------------
    # Queue and state helpers (caller holds _lock)
    # ------------------------------------------------------------------

    def _enqueue_locked(self, payload: str) -> None:
        if self._max_queue_size is not None and len(self._queue) >= self._max_queue_size:
            self._queue.popleft()
            self._messages_evicted += 1
            if self._messages_evicted - self._last_logged_eviction_count >= self._LOG_INTERVAL:
                logger.warning(
                    "Transport queue overflow - oldest messages evicted",
                    evicted_since_last_log=self._messages_evicted - self._last_logged_eviction_count,
                    evicted_total=self._messages_evicted,
                    max_queue_size=self._max_queue_size,
                    state=self._state.value,
                )
                self._last_logged_eviction_count = self._messages_evicted
        self._queue.append(payload)

    def _can_auto_connect_locked(self) -> bool:
        return (
            not self._closed
            and self._state is ConnectionState.DISCONNECTED
            and self._retry_handle is None
            and self._remaining_attempts > 0
        )

    def _begin_connect_locked(self) -> None:
        self._state = ConnectionState.CONNECTING
        self._scheduler.call_soon(self._open_connection)

    def _schedule_drain_locked(self) -> None:
        if not self._drain_scheduled:
            self._drain_scheduled = True
            self._scheduler.call_soon(self._drain)

    # ------------------------------------------------------------------
    # Scheduler-thread tasks
    # ------------------------------------------------------------------

    def _open_connection(self) -> None:
        with self._lock:
            if self._closed or self._state is not ConnectionState.CONNECTING:
                return

        try:
            connection = self._connector.open()
        except Exception as e:
            # ConnectError from well-behaved connectors; anything else is a
            # connector bug and is treated the same way.
            self._handle_connect_failure(e)
            return

        with self._lock:
            if self._closed:
                stale: ConnectionProtocol | None = connection
            else:
                stale = None
                self._connection = connection
                self._state = ConnectionState.OPEN
                self._remaining_attempts = self._reconnection_attempts
                self._connections_opened += 1
                queued = len(self._queue)
                self._schedule_drain_locked()

        if stale is not None:
            self._close_connection(stale)
            return

        logger.info("Connected to collector", endpoint=self._connector.endpoint, queued=queued)
        self._invoke_callback(self._on_open, "on_open")

    def _handle_connect_failure(self, error: Exception) -> None:
        with self._lock:
            self._connect_failures += 1
            self._remaining_attempts = max(0, self._remaining_attempts - 1)
            if self._closed:
                return
            self._state = ConnectionState.DISCONNECTED
            remaining = self._remaining_attempts
            queued = len(self._queue)
            if remaining > 0 and self._retry_handle is None:
                self._retry_handle = self._scheduler.call_later(self._reconnection_timeout_ms, self._retry)

        if remaining > 0:
            logger.warning(
                "Collector connection failed - retry scheduled",
                endpoint=self._connector.endpoint,
                error=str(error),
                error_type=type(error).__name__,
                remaining_attempts=remaining,
                retry_in_ms=self._reconnection_timeout_ms,
            )
        else:
            logger.error(
                "Collector connection failed - reconnection attempts exhausted",
                endpoint=self._connector.endpoint,
                error=str(error),
                error_type=type(error).__name__,
                queued=queued,
                hint="Messages will queue until reconnect() succeeds",
            )

    def _retry(self) -> None:
        with self._lock:
            self._retry_handle = None
            if self._closed or self._state is not ConnectionState.DISCONNECTED:
                return
            self._begin_connect_locked()

    def _drain(self) -> None:
        """Write queued messages head-first while the connection stays open."""
        with self._lock:
            self._drain_scheduled = False

        while True:
            with self._lock:
                if self._state is not ConnectionState.OPEN or self._connection is None or not self._queue:
                    return
                payload = self._queue.popleft()
                connection = self._connection

            try:
                connection.send(payload)
            except ConnectionLostError as e:
                self._handle_connection_lost(connection, payload, e)
                return
            except DeliveryError as e:
                with self._lock:
                    self._delivery_failures += 1
                logger.warning(
                    "Collector refused message - dropped",
                    endpoint=self._connector.endpoint,
                    status_code=e.status_code,
                    error=str(e),
                )
            except Exception as e:
                # Connector bug: drop the message rather than loop on it
                with self._lock:
                    self._delivery_failures += 1
                logger.error(
                    "Connection write failed unexpectedly - message dropped",
                    endpoint=self._connector.endpoint,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
            else:
                with self._lock:
                    self._messages_sent += 1

    def _handle_connection_lost(self, connection: ConnectionProtocol, payload: str, error: Exception) -> None:
        with self._lock:
            # Retry this message before anything queued after it
            self._queue.appendleft(payload)
            if self._connection is connection:
                self._connection = None
            if self._closed:
                return
            self._state = ConnectionState.DISCONNECTED
            if self._can_auto_connect_locked():
                self._begin_connect_locked()
            queued = len(self._queue)

        self._close_connection(connection)
        logger.warning(
            "Collector connection lost - reconnecting",
            endpoint=self._connector.endpoint,
            error=str(error),
            queued=queued,
        )
        self._invoke_callback(self._on_close, "on_close")

    # ------------------------------------------------------------------
    # Failure isolation
    # ------------------------------------------------------------------

    def _close_connection(self, connection: ConnectionProtocol) -> None:
        try:
            connection.close()
        except Exception as e:
            logger.warning("Failed to close collector connection", endpoint=self._connector.endpoint, error=str(e))

    def _invoke_callback(self, callback: Callable[[], None] | None, name: str) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            logger.error("Transport callback failed", callback=name, error=str(e), exc_info=True)
