# src/faultline/transport/connectors/http.py
"""HTTP(S) collector connector built on httpx.

Opening a connection probes the collector with a HEAD request so that an
unreachable collector drives the reconnection policy instead of failing
every queued message. Each message is then delivered as one JSON POST.

All collector traffic runs inside the instrumentation suppression context,
so the httpx breadcrumb hook never records the library's own requests.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import ClassVar

import httpx
import structlog

from faultline.errors import ConnectError, ConnectionLostError, DeliveryError
from faultline.instrumentation.patching import suppressed

logger = structlog.get_logger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


class HttpConnection:
    """One httpx.Client bound to the collector endpoint."""

    def __init__(self, client: httpx.Client, endpoint: str) -> None:
        self._client = client
        self._endpoint = endpoint
        self._closed = False

    def send(self, payload: str) -> None:
        """POST one message.

        Raises:
            ConnectionLostError: Network-level failure (including timeouts)
            DeliveryError: Collector answered with an error status
        """
        if self._closed:
            raise ConnectionLostError("Connection is closed")

        with suppressed():
            try:
                response = self._client.post(self._endpoint, content=payload, headers=_JSON_HEADERS)
            except httpx.TransportError as e:
                raise ConnectionLostError(f"{type(e).__name__}: {e}") from e

        if response.is_error:
            raise DeliveryError(
                f"Collector rejected message with HTTP {response.status_code}",
                status_code=response.status_code,
            )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.close()
        except Exception as e:
            logger.warning("Failed to close HTTP connection", endpoint=self._endpoint, error=str(e))


class HttpConnector:
    """Connector for http:// and https:// collector endpoints.

    Args:
        endpoint: Collector URL; messages are POSTed here
        timeout: Per-request timeout in seconds
        headers: Extra headers sent with every request
        transport: Optional httpx transport (httpx.MockTransport in tests)
    """

    _name = "http"
    schemes: ClassVar[tuple[str, ...]] = ("http", "https")

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 5.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._headers = dict(headers) if headers else {}
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def open(self) -> HttpConnection:
        """Create a client and probe the collector.

        Any HTTP response, even an error status, proves the collector is
        reachable; only network failures count as a failed connect.

        Raises:
            ConnectError: If the probe fails at the network level
        """
        client = httpx.Client(timeout=self._timeout, headers=self._headers, transport=self._transport)
        with suppressed():
            try:
                client.head(self._endpoint)
            except httpx.TransportError as e:
                client.close()
                raise ConnectError(f"Cannot reach collector at {self._endpoint}: {e}") from e

        logger.debug("Collector connection opened", endpoint=self._endpoint)
        return HttpConnection(client, self._endpoint)
