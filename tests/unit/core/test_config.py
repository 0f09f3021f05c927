# tests/unit/core/test_config.py
"""Tests for FaultlineSettings validation and load_settings().

Tests cover:
- Defaults and frozen behaviour
- Field validation (token, endpoint, numeric limits)
- sample_rate correction instead of rejection
- YAML loading through Dynaconf
- FAULTLINE_* environment overrides
- ${VAR} / ${VAR:-default} expansion
- Keyword overrides (callables)
- describe_settings() hides the token and callables
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from faultline.core.config import FaultlineSettings, _expand_env_vars, describe_settings, load_settings

# =============================================================================
# Schema
# =============================================================================


class TestFaultlineSettings:
    def test_defaults(self) -> None:
        settings = FaultlineSettings(token="abc", collector_endpoint="https://collector.example.com")

        assert settings.max_breadcrumbs == 15
        assert settings.track_fetch is True
        assert settings.track_navigation is True
        assert settings.track_clicks is True
        assert settings.track_logging is False
        assert settings.performance is False
        assert settings.sample_rate == 1.0
        assert settings.threshold_ms == 20.0
        assert settings.critical_duration_threshold_ms == 1000.0
        assert settings.batch_interval_ms == 3000.0
        assert settings.reconnection_attempts == 5
        assert settings.reconnection_timeout_ms == 10_000.0
        assert settings.max_queue_size is None

    def test_frozen(self) -> None:
        settings = FaultlineSettings(token="abc", collector_endpoint="console://stdout")
        with pytest.raises(ValidationError):
            settings.token = "other"  # type: ignore[misc]

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unexpected"):
            FaultlineSettings(token="abc", collector_endpoint="console://stdout", unexpected=True)

    @pytest.mark.parametrize("field", ["token", "collector_endpoint"])
    def test_required_strings_must_be_non_empty(self, field: str) -> None:
        values = {"token": "abc", "collector_endpoint": "console://stdout", field: ""}
        with pytest.raises(ValidationError):
            FaultlineSettings(**values)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("max_breadcrumbs", 0),
            ("reconnection_attempts", -1),
            ("reconnection_timeout_ms", 0),
            ("batch_interval_ms", 0),
            ("max_queue_size", 0),
            ("threshold_ms", -5),
        ],
    )
    def test_numeric_limits(self, field: str, value: int) -> None:
        with pytest.raises(ValidationError):
            FaultlineSettings(token="abc", collector_endpoint="console://stdout", **{field: value})

    def test_zero_reconnection_attempts_allowed(self) -> None:
        settings = FaultlineSettings(token="abc", collector_endpoint="console://stdout", reconnection_attempts=0)
        assert settings.reconnection_attempts == 0

    @pytest.mark.parametrize("bad_rate", [-0.5, 1.5, "often", True, float("nan")])
    def test_invalid_sample_rate_corrected_to_one(self, bad_rate: object) -> None:
        with patch("faultline.performance.sampling.logger") as mock_logger:
            settings = FaultlineSettings(token="abc", collector_endpoint="console://stdout", sample_rate=bad_rate)

        assert settings.sample_rate == 1.0
        mock_logger.error.assert_called_once()

    def test_valid_sample_rate_kept(self) -> None:
        settings = FaultlineSettings(token="abc", collector_endpoint="console://stdout", sample_rate=0.25)
        assert settings.sample_rate == 0.25

    def test_callables_accepted(self) -> None:
        settings = FaultlineSettings(
            token="abc",
            collector_endpoint="console://stdout",
            before_breadcrumb=lambda crumb, hint: crumb,
            before_send=lambda event: event,
        )
        assert callable(settings.before_breadcrumb)
        assert callable(settings.before_send)


# =============================================================================
# Loading
# =============================================================================


class TestLoadSettings:
    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "faultline.yaml"
        config_file.write_text(
            "token: file-token\n"
            "collector_endpoint: https://collector.example.com/ingest\n"
            "max_breadcrumbs: 30\n"
            "performance: true\n"
            "sample_rate: 0.5\n"
        )

        settings = load_settings(config_file)

        assert settings.token == "file-token"
        assert settings.collector_endpoint == "https://collector.example.com/ingest"
        assert settings.max_breadcrumbs == 30
        assert settings.performance is True
        assert settings.sample_rate == 0.5

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="not found"):
            load_settings(tmp_path / "missing.yaml")

    def test_env_var_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "faultline.yaml"
        config_file.write_text("token: file-token\ncollector_endpoint: console://stdout\nmax_breadcrumbs: 30\n")
        monkeypatch.setenv("FAULTLINE_MAX_BREADCRUMBS", "50")

        settings = load_settings(config_file)

        assert settings.max_breadcrumbs == 50

    def test_placeholder_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "faultline.yaml"
        config_file.write_text(
            "token: ${COLLECTOR_TEST_TOKEN}\ncollector_endpoint: ${COLLECTOR_TEST_ENDPOINT:-console://stderr}\n"
        )
        monkeypatch.setenv("COLLECTOR_TEST_TOKEN", "from-env")
        monkeypatch.delenv("COLLECTOR_TEST_ENDPOINT", raising=False)

        settings = load_settings(config_file)

        assert settings.token == "from-env"
        assert settings.collector_endpoint == "console://stderr"

    def test_keyword_overrides_win(self, tmp_path: Path) -> None:
        config_file = tmp_path / "faultline.yaml"
        config_file.write_text("token: file-token\ncollector_endpoint: console://stdout\n")

        def drop_all(crumb: object, hint: object) -> None:
            return None

        settings = load_settings(config_file, token="override", before_breadcrumb=drop_all)

        assert settings.token == "override"
        assert settings.before_breadcrumb is drop_all

    def test_invalid_file_values_raise(self, tmp_path: Path) -> None:
        config_file = tmp_path / "faultline.yaml"
        config_file.write_text("token: file-token\ncollector_endpoint: console://stdout\nmax_breadcrumbs: 0\n")

        with pytest.raises(ValidationError):
            load_settings(config_file)


class TestExpandEnvVars:
    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COLLECTOR_TEST_HOST", "collector.internal")
        result = _expand_env_vars({"a": {"b": ["https://${COLLECTOR_TEST_HOST}/ingest", 3]}})
        assert result == {"a": {"b": ["https://collector.internal/ingest", 3]}}

    def test_unresolved_placeholder_kept(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COLLECTOR_TEST_UNSET", raising=False)
        assert _expand_env_vars({"token": "${COLLECTOR_TEST_UNSET}"}) == {"token": "${COLLECTOR_TEST_UNSET}"}


class TestDescribeSettings:
    def test_token_and_callables_hidden(self) -> None:
        settings = FaultlineSettings(
            token="secret-token",
            collector_endpoint="console://stdout",
            before_send=lambda event: event,
        )

        summary = describe_settings(settings)

        assert "token" not in summary
        assert "before_send" not in summary
        assert "before_breadcrumb" not in summary
        assert summary["has_before_send"] is True
        assert summary["has_before_breadcrumb"] is False
        assert summary["collector_endpoint"] == "console://stdout"
        assert "secret-token" not in repr(summary)
