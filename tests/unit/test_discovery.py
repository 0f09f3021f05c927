# tests/unit/test_discovery.py
"""Tests for pluggy-based connector and instrumentation discovery.

Tests cover:
- Built-in connectors indexed by scheme
- Built-in instrumentations indexed by name
- Third-party plugins extend the registries
- Duplicate schemes and names are rejected
- Malformed hook results and invalid plugins raise PluginDiscoveryError
- create_connector() resolves the endpoint scheme
"""

from typing import ClassVar

import pytest

from faultline.discovery import discover_connectors, discover_instrumentations
from faultline.errors import PluginDiscoveryError
from faultline.hookspecs import hookimpl
from faultline.instrumentation import (
    ClickInstrumentation,
    HttpxInstrumentation,
    LoggingInstrumentation,
    NavigationInstrumentation,
    UrllibInstrumentation,
)
from faultline.testing import RecordingConnector, RecordingConnectorPlugin
from faultline.transport import create_connector
from faultline.transport.connectors import ConsoleConnector, HttpConnector

# =============================================================================
# Test plugins
# =============================================================================


class _SecondHttpConnector:
    schemes: ClassVar[tuple[str, ...]] = ("HTTPS",)

    def __init__(self, endpoint: str, **_options: object) -> None:
        self.endpoint = endpoint


class _NoSchemesConnector:
    pass


class _DuplicateHttpPlugin:
    @hookimpl
    def faultline_get_connectors(self) -> list[type]:
        return [_SecondHttpConnector]


class _NoSchemesPlugin:
    @hookimpl
    def faultline_get_connectors(self) -> list[type]:
        return [_NoSchemesConnector]


class _NonePlugin:
    @hookimpl
    def faultline_get_connectors(self) -> None:
        return None


class _StringPlugin:
    @hookimpl
    def faultline_get_connectors(self) -> str:
        return "HttpConnector"


class _FailingPlugin:
    @hookimpl
    def faultline_get_connectors(self) -> list[type]:
        raise RuntimeError("plugin import failed")


class _MisspelledHookPlugin:
    @hookimpl
    def faultline_get_connector(self) -> list[type]:
        return []


class _SqlInstrumentation:
    _name = "sql"
    _toggle = "track_sql"


class _SqlPlugin:
    @hookimpl
    def faultline_get_instrumentations(self) -> list[type]:
        return [_SqlInstrumentation]


class _NamelessInstrumentation:
    _toggle = "track_fetch"


class _NamelessPlugin:
    @hookimpl
    def faultline_get_instrumentations(self) -> list[type]:
        return [_NamelessInstrumentation]


class _UntoggledInstrumentation:
    _name = "untoggled"


class _UntoggledPlugin:
    @hookimpl
    def faultline_get_instrumentations(self) -> list[type]:
        return [_UntoggledInstrumentation]


class _ShadowHttpx(HttpxInstrumentation):
    _name = "httpx"


class _ShadowHttpxPlugin:
    @hookimpl
    def faultline_get_instrumentations(self) -> list[type]:
        return [_ShadowHttpx]


# =============================================================================
# Connectors
# =============================================================================


class TestDiscoverConnectors:
    def test_builtin_connectors(self) -> None:
        registry = discover_connectors()

        assert registry == {"http": HttpConnector, "https": HttpConnector, "console": ConsoleConnector}

    def test_plugin_adds_scheme(self) -> None:
        registry = discover_connectors([RecordingConnectorPlugin()])

        assert registry["memory"] is RecordingConnector

    def test_duplicate_scheme_rejected(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="Duplicate connector scheme 'https'"):
            discover_connectors([_DuplicateHttpPlugin()])

    def test_missing_schemes_rejected(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="schemes must be a non-empty tuple"):
            discover_connectors([_NoSchemesPlugin()])

    @pytest.mark.parametrize("plugin", [_NonePlugin(), _StringPlugin()])
    def test_malformed_result_rejected(self, plugin: object) -> None:
        with pytest.raises(PluginDiscoveryError, match="expected iterable of classes"):
            discover_connectors([plugin])

    def test_failing_hook_wrapped(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="plugin import failed"):
            discover_connectors([_FailingPlugin()])

    def test_unknown_hook_name_rejected(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="_MisspelledHookPlugin"):
            discover_connectors([_MisspelledHookPlugin()])

    def test_same_plugin_object_twice_rejected(self) -> None:
        plugin = RecordingConnectorPlugin()
        with pytest.raises(PluginDiscoveryError):
            discover_connectors([plugin, plugin])


# =============================================================================
# Instrumentations
# =============================================================================


class TestDiscoverInstrumentations:
    def test_builtin_instrumentations_in_order(self) -> None:
        registry = discover_instrumentations()

        assert list(registry) == ["httpx", "urllib", "navigation", "clicks", "logging"]
        assert registry["httpx"] is HttpxInstrumentation
        assert registry["urllib"] is UrllibInstrumentation
        assert registry["navigation"] is NavigationInstrumentation
        assert registry["clicks"] is ClickInstrumentation
        assert registry["logging"] is LoggingInstrumentation

    def test_plugin_adds_instrumentation(self) -> None:
        registry = discover_instrumentations([_SqlPlugin()])

        assert registry["sql"] is _SqlInstrumentation

    def test_duplicate_name_rejected(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="Duplicate instrumentation name 'httpx'"):
            discover_instrumentations([_ShadowHttpxPlugin()])

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="non-empty string"):
            discover_instrumentations([_NamelessPlugin()])

    def test_missing_toggle_rejected(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="_toggle"):
            discover_instrumentations([_UntoggledPlugin()])


# =============================================================================
# create_connector()
# =============================================================================


class TestCreateConnector:
    def test_https_endpoint(self) -> None:
        connector = create_connector("https://collector.example.com/ingest", timeout=2.0)

        assert isinstance(connector, HttpConnector)
        assert connector.endpoint == "https://collector.example.com/ingest"

    def test_scheme_is_case_insensitive(self) -> None:
        assert isinstance(create_connector("CONSOLE://stderr"), ConsoleConnector)

    def test_plugin_connector(self) -> None:
        connector = create_connector("memory://collector", [RecordingConnectorPlugin()])

        assert isinstance(connector, RecordingConnector)

    def test_unknown_scheme(self) -> None:
        with pytest.raises(PluginDiscoveryError, match="No connector for endpoint scheme 'ftp'") as exc_info:
            create_connector("ftp://collector.example.com")

        assert "console, http, https" in str(exc_info.value)
