# src/faultline/breadcrumbs/__init__.py
"""Breadcrumb trail: ring buffer plus the manager that feeds it.

Usage:
    from faultline.breadcrumbs import BreadcrumbManager

    manager = BreadcrumbManager()
    manager.init_from_settings(settings)
    manager.add({"message": "Checkout started", "type": "logic"})
    trail = manager.get()
"""

from faultline.breadcrumbs.buffer import BreadcrumbBuffer
from faultline.breadcrumbs.manager import DEFAULT_MAX_BREADCRUMBS, BeforeBreadcrumb, BreadcrumbManager

__all__ = [
    "DEFAULT_MAX_BREADCRUMBS",
    "BeforeBreadcrumb",
    "BreadcrumbBuffer",
    "BreadcrumbManager",
]
