# src/faultline/testing/__init__.py
"""Deterministic test doubles for faultline and for applications using it.

- FakeClock: settable wall and monotonic time
- ManualScheduler: virtual-time scheduler driven by advance()/run_pending()
- RecordingConnector: in-memory collector with scriptable failures
"""

from faultline.testing.clock import FakeClock
from faultline.testing.connector import RecordingConnection, RecordingConnector, RecordingConnectorPlugin
from faultline.testing.scheduler import ManualScheduler

__all__ = [
    "FakeClock",
    "ManualScheduler",
    "RecordingConnection",
    "RecordingConnector",
    "RecordingConnectorPlugin",
]
