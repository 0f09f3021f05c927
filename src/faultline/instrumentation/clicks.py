# src/faultline/instrumentation/clicks.py
"""UI click breadcrumbs.

By default wraps ``textual.message_pump.MessagePump.post_message`` and
records ``textual.events.Click`` messages. A click bubbles by being posted
to each ancestor in turn; only the first post of a given message object is
recorded.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import Any

from faultline.contracts import Breadcrumb, BreadcrumbHint, BreadcrumbLevel, BreadcrumbType
from faultline.instrumentation.base import PatchingInstrumentation, PatchTarget
from faultline.instrumentation.patching import is_suppressed

MAX_TEXT_LENGTH = 50


def build_selector(widget: Any) -> str:
    """Return ``Type#id``, ``Type.class1.class2`` or ``Type`` for a widget."""
    selector = type(widget).__name__
    widget_id = getattr(widget, "id", None)
    if widget_id:
        return f"{selector}#{widget_id}"
    classes = sorted(c for c in getattr(widget, "classes", ()) if c)
    if classes:
        selector += "." + ".".join(classes)
    return selector


def widget_text(widget: Any) -> str:
    """Visible label of a widget, trimmed to MAX_TEXT_LENGTH characters."""
    label = getattr(widget, "label", None)
    if label is None:
        return ""
    return str(label).strip()[:MAX_TEXT_LENGTH]


class ClickInstrumentation(PatchingInstrumentation):
    """Record clicks as ``ui`` breadcrumbs (category ``ui.click``).

    Args:
        owner: Class whose ``post_message`` is wrapped (textual MessagePump by default)
        event_type: Message class that represents a click (textual Click by default)
    """

    _name = "clicks"
    _toggle = "track_clicks"

    # Recently recorded click messages, held so identity checks stay valid
    _SEEN_WINDOW = 64

    def __init__(self, owner: type | None = None, *, event_type: type | None = None) -> None:
        super().__init__()
        self._owner = owner
        self._event_type = event_type
        self._seen: deque[Any] = deque(maxlen=self._SEEN_WINDOW)

    def _targets(self) -> list[PatchTarget]:
        owner = self._owner
        if owner is None:
            from textual.message_pump import MessagePump

            owner = MessagePump
        if self._event_type is None:
            from textual.events import Click

            self._event_type = Click
        return [(owner, "post_message", self._wrap_post)]

    def _wrap_post(self, original: Callable[..., Any]) -> Callable[..., Any]:
        adapter = self

        def post_message(pump: Any, message: Any, *args: Any, **kwargs: Any) -> Any:
            result = original(pump, message, *args, **kwargs)
            if not is_suppressed() and adapter._is_new_click(message):
                adapter._capture(adapter._build, pump, message)
            return result

        return post_message

    def _is_new_click(self, message: Any) -> bool:
        event_type = self._event_type
        if event_type is None or not isinstance(message, event_type):
            return False
        if any(seen is message for seen in self._seen):
            return False
        self._seen.append(message)
        return True

    def _build(self, pump: Any, message: Any) -> tuple[Breadcrumb, BreadcrumbHint]:
        widget = getattr(message, "widget", None) or pump
        selector = build_selector(widget)
        breadcrumb = Breadcrumb(
            type=BreadcrumbType.UI,
            category="ui.click",
            level=BreadcrumbLevel.INFO,
            message=f"Click on {selector}",
            data={
                "selector": selector,
                "text": widget_text(widget),
                "widget_type": type(widget).__name__,
            },
        )
        return breadcrumb, BreadcrumbHint(event=message)

    def uninstall(self) -> None:
        super().uninstall()
        self._seen.clear()
