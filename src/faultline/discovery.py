# src/faultline/discovery.py
"""Plugin discovery for connectors and instrumentation adapters.

Registers the built-in plugins plus any plugin objects supplied by the
caller with a pluggy PluginManager, calls the relevant hook and builds a
name -> class registry. Duplicate names and malformed hook results are
configuration errors and raise PluginDiscoveryError.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import pluggy
import structlog

from faultline.errors import PluginDiscoveryError
from faultline.hookspecs import PROJECT_NAME, FaultlineSpec

if TYPE_CHECKING:
    from faultline.instrumentation.protocols import InstrumentationAdapter
    from faultline.transport.protocols import ConnectorProtocol

logger = structlog.get_logger(__name__)


def _build_plugin_manager(plugins: Iterable[Any]) -> pluggy.PluginManager:
    # Deferred: faultline.transport imports this module for create_connector
    from faultline.instrumentation import BuiltinInstrumentationsPlugin
    from faultline.transport.connectors import BuiltinConnectorsPlugin

    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(FaultlineSpec)

    plugins_to_register: list[Any] = [BuiltinConnectorsPlugin(), BuiltinInstrumentationsPlugin(), *list(plugins)]
    for plugin in plugins_to_register:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: hook spec mismatch (wrong method names, etc.)
            # ValueError: duplicate plugin object or plugin name already registered
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise PluginDiscoveryError(
                "faultline_plugins",
                f"Invalid plugin {type(plugin).__name__}: {e}",
            ) from e
    return plugin_manager


def _collect_classes(plugin_manager: pluggy.PluginManager, hook_name: str) -> list[type]:
    """Call one discovery hook on every plugin, validating each result."""
    classes: list[type] = []
    for hook_impl in getattr(plugin_manager.hook, hook_name).get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            result = hook_impl.function()
        except Exception as e:
            raise PluginDiscoveryError(
                "faultline_plugins",
                f"Plugin {plugin_name} failed in {hook_name}: {e}",
            ) from e

        if result is None or type(result) in (str, bytes):
            raise PluginDiscoveryError(
                "faultline_plugins",
                f"{hook_name} in plugin {plugin_name} returned {type(result).__name__}; expected iterable of classes",
            )
        try:
            classes.extend(result)
        except TypeError as e:
            raise PluginDiscoveryError(
                "faultline_plugins",
                f"{hook_name} in plugin {plugin_name} returned {type(result).__name__}; expected iterable of classes",
            ) from e
    return classes


def _register(registry: dict[str, type], key: str, cls: type, kind: str) -> None:
    if type(key) is not str or key == "":
        raise PluginDiscoveryError(cls.__name__, f"{kind} key must be a non-empty string, got {key!r}")
    if key in registry:
        raise PluginDiscoveryError(
            key,
            f"Duplicate {kind} '{key}' discovered: {registry[key].__name__} and {cls.__name__}",
        )
    registry[key] = cls


def discover_connectors(plugins: Iterable[Any] = ()) -> dict[str, type[ConnectorProtocol]]:
    """Discover connectors and index them by the URL schemes they serve.

    Args:
        plugins: Additional plugin objects implementing faultline_get_connectors

    Returns:
        Mapping of lowercase URL scheme to connector class

    Raises:
        PluginDiscoveryError: If a plugin is invalid or two connectors claim
            the same scheme
    """
    plugin_manager = _build_plugin_manager(plugins)
    registry: dict[str, type] = {}
    for connector_class in _collect_classes(plugin_manager, "faultline_get_connectors"):
        schemes = connector_class.__dict__.get("schemes")
        if not schemes or isinstance(schemes, str):
            raise PluginDiscoveryError(
                connector_class.__name__,
                f"Connector class attribute schemes must be a non-empty tuple, got {schemes!r}",
            )
        for scheme in schemes:
            _register(registry, scheme.lower() if isinstance(scheme, str) else scheme, connector_class, "connector scheme")
    return registry


def discover_instrumentations(plugins: Iterable[Any] = ()) -> dict[str, type[InstrumentationAdapter]]:
    """Discover instrumentation adapters and index them by name.

    Args:
        plugins: Additional plugin objects implementing faultline_get_instrumentations

    Returns:
        Mapping of adapter name to adapter class, in discovery order

    Raises:
        PluginDiscoveryError: If a plugin is invalid, an adapter has no
            ``_name``/``_toggle`` or two adapters share a name
    """
    plugin_manager = _build_plugin_manager(plugins)
    registry: dict[str, type] = {}
    for adapter_class in _collect_classes(plugin_manager, "faultline_get_instrumentations"):
        toggle = getattr(adapter_class, "_toggle", None)
        if type(toggle) is not str or toggle == "":
            raise PluginDiscoveryError(
                adapter_class.__name__,
                f"Instrumentation class attribute _toggle must be a non-empty string, got {toggle!r}",
            )
        _register(registry, adapter_class.__dict__.get("_name"), adapter_class, "instrumentation name")

    logger.debug("Instrumentations discovered", names=list(registry))
    return registry
