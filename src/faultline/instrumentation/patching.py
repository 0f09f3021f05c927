# src/faultline/instrumentation/patching.py
"""Reversible method patching and re-entrancy guards.

MethodPatch swaps a class attribute for a wrapper and later puts back the
exact object that was there before. Two context variables keep hooks from
recording themselves:

- suppressed(): no hook records anything (collector traffic, sink calls)
- hook_active(name): nested calls into the same hook go straight to the
  original (urllib redirects re-enter OpenerDirector.open, for instance)
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from faultline.errors import InstrumentationError

logger = structlog.get_logger(__name__)

_suppressed: ContextVar[bool] = ContextVar("faultline_suppressed", default=False)
_active_hooks: ContextVar[frozenset[str]] = ContextVar("faultline_active_hooks", default=frozenset())

# Set on every wrapper so a second install can be detected
WRAPPED_MARKER = "__faultline_wrapped__"

_MISSING = object()


@contextmanager
def suppressed() -> Iterator[None]:
    """Disable breadcrumb capture for the current context."""
    token = _suppressed.set(True)
    try:
        yield
    finally:
        _suppressed.reset(token)


def is_suppressed() -> bool:
    return _suppressed.get()


@contextmanager
def hook_active(name: str) -> Iterator[None]:
    """Mark the named hook as executing its original call."""
    token = _active_hooks.set(_active_hooks.get() | {name})
    try:
        yield
    finally:
        _active_hooks.reset(token)


def is_hook_active(name: str) -> bool:
    return name in _active_hooks.get()


class MethodPatch:
    """One reversible replacement of ``owner.attribute``.

    The raw attribute is read from ``owner.__dict__`` so descriptors
    (staticmethod, classmethod) are restored as-is. When the attribute was
    inherited, restore() deletes the override instead of copying the
    parent's attribute onto the owner.

    Example:
        patch = MethodPatch(httpx.Client, "send")
        patch.install(lambda original: make_wrapper(original))
        ...
        patch.restore()
    """

    def __init__(self, owner: type, attribute: str) -> None:
        self.owner = owner
        self.attribute = attribute
        self._saved: Any = _MISSING
        self._wrapper: Any = None

    @property
    def installed(self) -> bool:
        return self._wrapper is not None

    def install(self, make_wrapper: Callable[[Callable[..., Any]], Callable[..., Any]]) -> None:
        """Replace the attribute with ``make_wrapper(original)``.

        Raises:
            InstrumentationError: If the attribute is missing or already wrapped
        """
        if self.installed:
            return
        target = f"{self.owner.__qualname__}.{self.attribute}"
        original = getattr(self.owner, self.attribute, _MISSING)
        if original is _MISSING:
            raise InstrumentationError(target, "attribute does not exist")
        if getattr(original, WRAPPED_MARKER, False):
            raise InstrumentationError(target, "already instrumented")

        wrapper = make_wrapper(original)
        functools.update_wrapper(wrapper, original)
        setattr(wrapper, WRAPPED_MARKER, True)

        self._saved = self.owner.__dict__.get(self.attribute, _MISSING)
        setattr(self.owner, self.attribute, wrapper)
        self._wrapper = wrapper
        logger.debug("Method patched", target=target)

    def restore(self) -> None:
        """Put back the original attribute. Idempotent."""
        if not self.installed:
            return
        if self.owner.__dict__.get(self.attribute) is not self._wrapper:
            logger.warning(
                "Patched attribute was replaced by someone else; restoring original anyway",
                target=f"{self.owner.__qualname__}.{self.attribute}",
            )
        if self._saved is _MISSING:
            if self.attribute in self.owner.__dict__:
                delattr(self.owner, self.attribute)
        else:
            setattr(self.owner, self.attribute, self._saved)
        self._saved = _MISSING
        self._wrapper = None
