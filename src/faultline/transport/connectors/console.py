# src/faultline/transport/connectors/console.py
"""Console connector for local debugging.

Writes every message as one JSON line to stdout or stderr. Selected with a
``console://stdout`` or ``console://stderr`` collector endpoint.
"""

from __future__ import annotations

import json
import sys
from typing import ClassVar, Literal, TextIO, TypeGuard
from urllib.parse import urlsplit

import structlog

from faultline.errors import ConnectError, ConnectionLostError

logger = structlog.get_logger(__name__)


def _is_valid_output(v: str) -> TypeGuard[Literal["stdout", "stderr"]]:
    """TypeGuard for output validation - enables mypy type narrowing."""
    return v in {"stdout", "stderr"}


class ConsoleConnection:
    """Writes messages to a stream, one per line."""

    def __init__(self, stream: TextIO, *, pretty: bool = False) -> None:
        self._stream = stream
        self._pretty = pretty
        self._closed = False

    def send(self, payload: str) -> None:
        if self._closed:
            raise ConnectionLostError("Console connection is closed")
        line = payload
        if self._pretty:
            line = json.dumps(json.loads(payload), indent=2, sort_keys=True)
        try:
            print(line, file=self._stream, flush=True)
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise ConnectionLostError(f"Console stream unavailable: {e}") from e

    def close(self) -> None:
        # The console connection does not own stdout/stderr
        self._closed = True


class ConsoleConnector:
    """Connector for console:// endpoints.

    Example configuration:
        collector_endpoint: console://stderr
    """

    _name = "console"
    schemes: ClassVar[tuple[str, ...]] = ("console",)

    # Valid configuration values (kept for error messages)
    _VALID_OUTPUTS: frozenset[str] = frozenset({"stdout", "stderr"})

    def __init__(self, endpoint: str, *, pretty: bool = False, **_options: object) -> None:
        self._endpoint = endpoint
        self._pretty = pretty
        self._output = urlsplit(endpoint).netloc or "stdout"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def open(self) -> ConsoleConnection:
        """Bind to the configured stream.

        Raises:
            ConnectError: If the endpoint names an unknown stream
        """
        output = self._output
        if not _is_valid_output(output):
            raise ConnectError(
                f"Invalid console output '{output}'. Must be one of: {', '.join(sorted(self._VALID_OUTPUTS))}",
            )
        stream = sys.stdout if output == "stdout" else sys.stderr
        logger.debug("Console connection opened", output=output, pretty=self._pretty)
        return ConsoleConnection(stream, pretty=self._pretty)
