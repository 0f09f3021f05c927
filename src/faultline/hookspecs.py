# src/faultline/hookspecs.py
"""pluggy hook specifications for faultline plugins.

Connectors and instrumentation adapters are discovered through these hooks,
so an application can ship its own collector connector or wrap another
HTTP library without touching faultline itself.

Usage (implementing a plugin):
    from faultline.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl
        def faultline_get_connectors(self):
            return [MyConnector]

        @hookimpl
        def faultline_get_instrumentations(self):
            return [MyInstrumentation]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from faultline.instrumentation.protocols import InstrumentationAdapter
    from faultline.transport.protocols import ConnectorProtocol

PROJECT_NAME = "faultline"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class FaultlineSpec:
    """Hook specifications for faultline plugins."""

    @hookspec
    def faultline_get_connectors(self) -> list[type["ConnectorProtocol"]]:  # type: ignore[empty-body]
        """Return collector connector classes.

        Each class declares the URL schemes it serves in a ``schemes``
        class attribute. The transport factory picks the connector whose
        scheme matches the configured collector endpoint.

        Returns:
            List of connector classes (not instances)
        """

    @hookspec
    def faultline_get_instrumentations(self) -> list[type["InstrumentationAdapter"]]:  # type: ignore[empty-body]
        """Return instrumentation adapter classes.

        Each class declares a unique ``_name`` and the settings flag that
        enables it in ``_toggle``. The BreadcrumbManager instantiates the
        enabled adapters on init.

        Returns:
            List of adapter classes (not instances)
        """
