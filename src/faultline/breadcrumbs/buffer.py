# src/faultline/breadcrumbs/buffer.py
"""Bounded ring buffer for breadcrumbs.

Key design decisions:
- Ring buffer via deque(maxlen=N): automatic oldest-first eviction
- Correct eviction counting: check was_full BEFORE append (deque evicts during)
- Aggregate logging: log every 100 evictions, not every one
"""

from collections import deque

import structlog

from faultline.contracts import Breadcrumb

logger = structlog.get_logger(__name__)


class BreadcrumbBuffer:
    """Holds the ``max_size`` most recently added breadcrumbs, oldest first.

    Thread Safety:
        NOT thread-safe. The BreadcrumbManager serializes access.

    Attributes:
        dropped_count: Total number of breadcrumbs evicted by newer ones.

    Example:
        >>> buffer = BreadcrumbBuffer(max_size=3)
        >>> for message in "abcd":
        ...     buffer.append(create_breadcrumb(message))
        >>> [b.message for b in buffer.snapshot()]
        ['b', 'c', 'd']
    """

    _LOG_INTERVAL = 100

    def __init__(self, max_size: int = 15) -> None:
        """Initialize the buffer.

        Args:
            max_size: Capacity. Defaults to 15.

        Raises:
            ValueError: If max_size < 1.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._buffer: deque[Breadcrumb] = deque(maxlen=max_size)
        self._dropped_count = 0
        self._last_logged_drop_count = 0

    def append(self, breadcrumb: Breadcrumb) -> None:
        was_full = len(self._buffer) == self._buffer.maxlen
        self._buffer.append(breadcrumb)
        if was_full:
            # deque auto-dropped the oldest item
            self._dropped_count += 1
            if self._dropped_count - self._last_logged_drop_count >= self._LOG_INTERVAL:
                logger.debug(
                    "Breadcrumb buffer full - oldest breadcrumbs evicted",
                    dropped_since_last_log=self._LOG_INTERVAL,
                    dropped_total=self._dropped_count,
                    buffer_size=self._buffer.maxlen,
                )
                self._last_logged_drop_count = self._dropped_count

    def snapshot(self) -> list[Breadcrumb]:
        """Return a copy, oldest to newest."""
        return list(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def resize(self, max_size: int) -> None:
        """Change capacity, keeping the newest breadcrumbs.

        Raises:
            ValueError: If max_size < 1.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        overflow = max(0, len(self._buffer) - max_size)
        self._buffer = deque(self._buffer, maxlen=max_size)
        self._dropped_count += overflow

    @property
    def max_size(self) -> int:
        # maxlen is always set for this deque
        return self._buffer.maxlen or 0

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    def __len__(self) -> int:
        return len(self._buffer)
