# src/faultline/instrumentation/httpx_hooks.py
"""Outbound request breadcrumbs for httpx.

Wraps ``httpx.Client.send`` and ``httpx.AsyncClient.send``; every request
made through the high-level helpers (get, post, stream, ...) funnels
through send(), so one breadcrumb is recorded per completed request.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import httpx

from faultline.contracts import Breadcrumb, BreadcrumbHint, BreadcrumbLevel, BreadcrumbType
from faultline.instrumentation.base import PatchingInstrumentation, PatchTarget
from faultline.instrumentation.patching import hook_active, is_hook_active, is_suppressed


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 3)


class HttpxInstrumentation(PatchingInstrumentation):
    """Record httpx requests as ``request`` breadcrumbs (category ``httpx``)."""

    _name = "httpx"
    _toggle = "track_fetch"

    def _targets(self) -> list[PatchTarget]:
        return [
            (httpx.Client, "send", self._wrap_sync),
            (httpx.AsyncClient, "send", self._wrap_async),
        ]

    def _wrap_sync(self, original: Callable[..., Any]) -> Callable[..., Any]:
        adapter = self

        def send(client: httpx.Client, request: httpx.Request, *args: Any, **kwargs: Any) -> Any:
            if is_suppressed() or is_hook_active(adapter.name):
                return original(client, request, *args, **kwargs)
            started = time.perf_counter()
            try:
                with hook_active(adapter.name):
                    response = original(client, request, *args, **kwargs)
            except Exception as exc:
                adapter._capture(adapter._build_failure, request, exc, _elapsed_ms(started))
                raise
            adapter._capture(adapter._build_response, request, response, _elapsed_ms(started))
            return response

        return send

    def _wrap_async(self, original: Callable[..., Any]) -> Callable[..., Any]:
        adapter = self

        async def send(client: httpx.AsyncClient, request: httpx.Request, *args: Any, **kwargs: Any) -> Any:
            if is_suppressed() or is_hook_active(adapter.name):
                return await original(client, request, *args, **kwargs)
            started = time.perf_counter()
            try:
                with hook_active(adapter.name):
                    response = await original(client, request, *args, **kwargs)
            except Exception as exc:
                adapter._capture(adapter._build_failure, request, exc, _elapsed_ms(started))
                raise
            adapter._capture(adapter._build_response, request, response, _elapsed_ms(started))
            return response

        return send

    def _build_response(
        self, request: httpx.Request, response: httpx.Response, duration_ms: float
    ) -> tuple[Breadcrumb, BreadcrumbHint]:
        method = request.method
        url = str(request.url)
        status = response.status_code
        breadcrumb = Breadcrumb(
            type=BreadcrumbType.REQUEST,
            category="httpx",
            level=BreadcrumbLevel.ERROR if status >= 400 else BreadcrumbLevel.INFO,
            message=f"{status} {method} {url}",
            data={"url": url, "method": method, "status_code": status, "duration_ms": duration_ms},
        )
        return breadcrumb, BreadcrumbHint(request=request, response=response)

    def _build_failure(
        self, request: httpx.Request, error: Exception, duration_ms: float
    ) -> tuple[Breadcrumb, BreadcrumbHint]:
        method = request.method
        url = str(request.url)
        breadcrumb = Breadcrumb(
            type=BreadcrumbType.REQUEST,
            category="httpx",
            level=BreadcrumbLevel.ERROR,
            message=f"[FAIL] {method} {url}",
            data={
                "url": url,
                "method": method,
                "status_code": 0,
                "duration_ms": duration_ms,
                "error": str(error) or type(error).__name__,
            },
        )
        return breadcrumb, BreadcrumbHint(request=request, error=error)
