# tests/unit/instrumentation/test_navigation.py
"""Tests for the screen navigation instrumentation.

Tests cover:
- from/to/via data for push and pop on a custom application class
- Location lookup failures before navigation do not break recording
- current_screen_name() for textual-like apps
- Default target is textual's App, restored exactly on uninstall
"""

from collections.abc import Iterator
from typing import Any

import pytest

from faultline.contracts import Breadcrumb, BreadcrumbHint, BreadcrumbType
from faultline.instrumentation import NavigationInstrumentation
from faultline.instrumentation.navigation import DEFAULT_METHODS, current_screen_name

Recorded = list[tuple[Breadcrumb, BreadcrumbHint]]


class _Router:
    def __init__(self) -> None:
        self.stack = ["home"]

    def push_screen(self, screen: str) -> None:
        self.stack.append(screen)

    def pop_screen(self) -> str:
        return self.stack.pop()


def _top(router: _Router) -> str:
    return router.stack[-1]


@pytest.fixture
def recorded() -> Iterator[Recorded]:
    received: Recorded = []
    adapter = NavigationInstrumentation(_Router, methods=("push_screen", "pop_screen"), location=_top)
    adapter.install(lambda crumb, hint: received.append((crumb, hint)))
    yield received
    adapter.uninstall()


class TestNavigationInstrumentation:
    def test_push_recorded(self, recorded: Recorded) -> None:
        router = _Router()

        router.push_screen("settings")

        crumb, hint = recorded[0]
        assert crumb.type is BreadcrumbType.NAVIGATION
        assert crumb.category == "navigation"
        assert crumb.message == "Navigated to settings"
        assert crumb.data == {"from": "home", "to": "settings", "via": "push_screen"}
        assert hint.event == "settings"
        assert hint.extra["app"] is router

    def test_pop_recorded(self, recorded: Recorded) -> None:
        router = _Router()
        router.push_screen("settings")

        assert router.pop_screen() == "settings"

        crumb, hint = recorded[-1]
        assert crumb.data == {"from": "settings", "to": "home", "via": "pop_screen"}
        assert hint.event is None

    def test_failed_navigation_not_recorded(self, recorded: Recorded) -> None:
        router = _Router()
        router.stack.clear()

        with pytest.raises(IndexError):
            router.pop_screen()

        assert recorded == []

    def test_location_failure_before_navigation(self) -> None:
        received: Recorded = []

        def location(router: _Router) -> str:
            return router.stack[-1]

        adapter = NavigationInstrumentation(_Router, methods=("push_screen",), location=location)
        adapter.install(lambda crumb, hint: received.append((crumb, hint)))
        try:
            router = _Router()
            router.stack.clear()
            router.push_screen("first")
        finally:
            adapter.uninstall()

        assert received[0][0].data == {"from": None, "to": "first", "via": "push_screen"}


class TestCurrentScreenName:
    def test_named_screen(self) -> None:
        screen = type("Screen", (), {"name": "checkout"})()
        assert current_screen_name(type("App", (), {"screen": screen})()) == "checkout"

    def test_unnamed_screen_uses_type(self) -> None:
        class MainScreen:
            name = None

        assert current_screen_name(type("App", (), {"screen": MainScreen()})()) == "MainScreen"

    def test_empty_stack(self) -> None:
        class EmptyApp:
            @property
            def screen(self) -> Any:
                raise LookupError("no screens")

        assert current_screen_name(EmptyApp()) is None


class TestTextualDefault:
    def test_default_owner_is_textual_app(self) -> None:
        from textual.app import App

        originals = {method: App.__dict__.get(method) for method in DEFAULT_METHODS}
        adapter = NavigationInstrumentation()

        adapter.install(lambda crumb, hint: None)
        assert all(App.__dict__[method] is not originals[method] for method in DEFAULT_METHODS)
        adapter.uninstall()

        assert {method: App.__dict__.get(method) for method in DEFAULT_METHODS} == originals
