# src/faultline/instrumentation/navigation.py
"""Screen navigation breadcrumbs.

By default wraps the screen-stack methods of ``textual.app.App``
(push_screen, switch_screen, pop_screen). Any other application class with
navigation methods can be instrumented by passing ``owner``, ``methods``
and a ``location`` function that names where the application currently is.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from faultline.contracts import Breadcrumb, BreadcrumbHint, BreadcrumbLevel, BreadcrumbType
from faultline.instrumentation.base import PatchingInstrumentation, PatchTarget
from faultline.instrumentation.patching import hook_active, is_hook_active, is_suppressed

DEFAULT_METHODS: tuple[str, ...] = ("push_screen", "switch_screen", "pop_screen")


def current_screen_name(app: Any) -> str | None:
    """Name of the active textual screen, or None before the app is running."""
    try:
        screen = app.screen
    except Exception:
        # textual raises ScreenStackError when the stack is empty
        return None
    return getattr(screen, "name", None) or type(screen).__name__


class NavigationInstrumentation(PatchingInstrumentation):
    """Record screen changes as ``navigation`` breadcrumbs.

    Args:
        owner: Class whose navigation methods are wrapped (textual App by default)
        methods: Names of the navigation methods
        location: Returns the current location of an owner instance
    """

    _name = "navigation"
    _toggle = "track_navigation"

    def __init__(
        self,
        owner: type | None = None,
        *,
        methods: Sequence[str] = DEFAULT_METHODS,
        location: Callable[[Any], str | None] = current_screen_name,
    ) -> None:
        super().__init__()
        self._owner = owner
        self._methods = tuple(methods)
        self._location = location

    def _targets(self) -> list[PatchTarget]:
        owner = self._owner
        if owner is None:
            from textual.app import App

            owner = App
        return [(owner, method, self._make_wrapper(method)) for method in self._methods]

    def _make_wrapper(self, via: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        adapter = self

        def make(original: Callable[..., Any]) -> Callable[..., Any]:
            def navigate(app: Any, *args: Any, **kwargs: Any) -> Any:
                if is_suppressed() or is_hook_active(adapter.name):
                    return original(app, *args, **kwargs)
                before = adapter._safe_location(app)
                with hook_active(adapter.name):
                    result = original(app, *args, **kwargs)
                adapter._capture(adapter._build, app, before, via, args)
                return result

            return navigate

        return make

    def _safe_location(self, app: Any) -> str | None:
        try:
            return self._location(app)
        except Exception:
            return None

    def _build(self, app: Any, before: str | None, via: str, args: tuple[Any, ...]) -> tuple[Breadcrumb, BreadcrumbHint]:
        after = self._location(app)
        breadcrumb = Breadcrumb(
            type=BreadcrumbType.NAVIGATION,
            category="navigation",
            level=BreadcrumbLevel.INFO,
            message=f"Navigated to {after}",
            data={"from": before, "to": after, "via": via},
        )
        return breadcrumb, BreadcrumbHint(event=args[0] if args else None, extra={"app": app})
