# src/faultline/instrumentation/base.py
"""Base class for adapters that wrap methods of host classes."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

import structlog

from faultline.contracts import Breadcrumb, BreadcrumbHint
from faultline.errors import InstrumentationError
from faultline.instrumentation.patching import MethodPatch, suppressed
from faultline.instrumentation.protocols import BreadcrumbSink

logger = structlog.get_logger(__name__)

# (owner class, attribute name, wrapper factory taking the original)
PatchTarget = tuple[type, str, Callable[[Callable[..., Any]], Callable[..., Any]]]


class PatchingInstrumentation:
    """Installs a set of MethodPatches and records through a sink.

    Subclasses set ``_name``/``_toggle`` and implement ``_targets()``.
    Wrappers call ``_capture`` to record; it never raises, so a bug in
    breadcrumb construction can not break the instrumented call.
    """

    _name: ClassVar[str]
    _toggle: ClassVar[str]

    def __init__(self) -> None:
        self._sink: BreadcrumbSink | None = None
        self._patches: list[MethodPatch] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def toggle(self) -> str:
        return self._toggle

    @property
    def installed(self) -> bool:
        return self._sink is not None

    def _targets(self) -> list[PatchTarget]:
        raise NotImplementedError

    def install(self, sink: BreadcrumbSink) -> None:
        """Patch every target, or none of them.

        Raises:
            InstrumentationError: If any target cannot be patched
        """
        if self.installed:
            logger.debug("Instrumentation already installed", instrumentation=self.name)
            return

        patches: list[MethodPatch] = []
        try:
            for owner, attribute, make_wrapper in self._targets():
                patch = MethodPatch(owner, attribute)
                patch.install(make_wrapper)
                patches.append(patch)
        except Exception as e:
            for patch in reversed(patches):
                patch.restore()
            if isinstance(e, InstrumentationError):
                raise
            raise InstrumentationError(self.name, str(e)) from e

        self._patches = patches
        self._sink = sink
        logger.debug("Instrumentation installed", instrumentation=self.name, patches=len(patches))

    def uninstall(self) -> None:
        if not self.installed:
            return
        for patch in reversed(self._patches):
            patch.restore()
        self._patches = []
        self._sink = None
        logger.debug("Instrumentation uninstalled", instrumentation=self.name)

    def _capture(self, build: Callable[..., tuple[Breadcrumb, BreadcrumbHint]], *args: Any) -> None:
        """Build a breadcrumb and hand it to the sink, logging any failure."""
        sink = self._sink
        if sink is None:
            return
        try:
            breadcrumb, hint = build(*args)
            with suppressed():
                sink(breadcrumb, hint)
        except Exception as e:
            logger.error(
                "Instrumentation failed to record breadcrumb",
                instrumentation=self.name,
                error=str(e),
                exc_info=True,
            )
