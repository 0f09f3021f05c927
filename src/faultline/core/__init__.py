# src/faultline/core/__init__.py
"""Core infrastructure: Clock, Scheduler, Sanitizer, Configuration, Logging."""

from faultline.core.clock import Clock, SystemClock, generate_id
from faultline.core.config import FaultlineSettings, describe_settings, load_settings
from faultline.core.logging import configure_logging
from faultline.core.sanitizer import Sanitizer, ValueKind, classify
from faultline.core.scheduler import Scheduler, TaskHandle, ThreadScheduler

__all__ = [
    "Clock",
    "FaultlineSettings",
    "Sanitizer",
    "Scheduler",
    "SystemClock",
    "TaskHandle",
    "ThreadScheduler",
    "ValueKind",
    "classify",
    "configure_logging",
    "describe_settings",
    "generate_id",
    "load_settings",
]
