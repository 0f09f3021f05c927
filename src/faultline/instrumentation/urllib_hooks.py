# src/faultline/instrumentation/urllib_hooks.py
"""Request-object I/O breadcrumbs for urllib.

Wraps ``urllib.request.OpenerDirector.open``, which ``urlopen`` and every
custom opener go through. Redirects re-enter open() on the same opener;
the re-entrancy guard keeps them from being recorded twice.
"""

from __future__ import annotations

import time
import urllib.error
import urllib.request
from collections.abc import Callable
from typing import Any

from faultline.contracts import Breadcrumb, BreadcrumbHint, BreadcrumbLevel, BreadcrumbType
from faultline.instrumentation.base import PatchingInstrumentation, PatchTarget
from faultline.instrumentation.patching import hook_active, is_hook_active, is_suppressed


def _describe(fullurl: Any, data: Any) -> tuple[str, str]:
    """Return (method, url) for a str URL or a Request object."""
    if isinstance(fullurl, urllib.request.Request):
        return fullurl.get_method(), fullurl.full_url
    return ("POST" if data is not None else "GET"), str(fullurl)


class UrllibInstrumentation(PatchingInstrumentation):
    """Record urllib requests as ``request`` breadcrumbs (category ``urllib``)."""

    _name = "urllib"
    _toggle = "track_fetch"

    def _targets(self) -> list[PatchTarget]:
        return [(urllib.request.OpenerDirector, "open", self._wrap_open)]

    def _wrap_open(self, original: Callable[..., Any]) -> Callable[..., Any]:
        adapter = self

        def open(opener: urllib.request.OpenerDirector, fullurl: Any, data: Any = None, *args: Any, **kwargs: Any) -> Any:
            if is_suppressed() or is_hook_active(adapter.name):
                return original(opener, fullurl, data, *args, **kwargs)
            started = time.perf_counter()
            try:
                with hook_active(adapter.name):
                    response = original(opener, fullurl, data, *args, **kwargs)
            except urllib.error.HTTPError as exc:
                # HTTPError carries a real status; other errors never reached a server
                adapter._capture(adapter._build, fullurl, data, exc.code, exc, exc, started)
                raise
            except Exception as exc:
                adapter._capture(adapter._build, fullurl, data, 0, None, exc, started)
                raise
            adapter._capture(adapter._build, fullurl, data, None, response, None, started)
            return response

        return open

    def _build(
        self,
        fullurl: Any,
        data: Any,
        status: int | None,
        response: Any,
        error: Exception | None,
        started: float,
    ) -> tuple[Breadcrumb, BreadcrumbHint]:
        method, url = _describe(fullurl, data)
        if status is None:
            status = getattr(response, "status", None) or response.getcode()
        failed = status == 0
        payload: dict[str, Any] = {
            "url": url,
            "method": method,
            "status_code": status,
            "duration_ms": round((time.perf_counter() - started) * 1000.0, 3),
        }
        if error is not None:
            payload["error"] = str(error) or type(error).__name__
        breadcrumb = Breadcrumb(
            type=BreadcrumbType.REQUEST,
            category="urllib",
            level=BreadcrumbLevel.ERROR if failed or status >= 400 else BreadcrumbLevel.INFO,
            message=f"[FAIL] {method} {url}" if failed else f"{status} {method} {url}",
            data=payload,
        )
        return breadcrumb, BreadcrumbHint(request=fullurl, response=response, error=error)
