# src/faultline/core/config.py
"""
Configuration schema and loading for faultline clients.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction: breadcrumb and hook
configuration is fixed for the lifetime of a client once set.
"""

import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field, field_validator

from faultline.performance.sampling import normalize_sample_rate

logger = structlog.get_logger(__name__)


class FaultlineSettings(BaseModel):
    """Complete client configuration.

    Example YAML:
        token: ${FAULTLINE_TOKEN}
        collector_endpoint: https://collector.example.com/ingest
        max_breadcrumbs: 30
        track_clicks: false
        performance: true
        sample_rate: 0.25
        threshold_ms: 50
    """

    model_config = {"frozen": True, "extra": "forbid"}

    token: str = Field(min_length=1, description="Project integration token sent with every message")
    collector_endpoint: str = Field(
        min_length=1,
        description="Collector URL; the scheme selects the connector (http, https, console)",
    )
    debug: bool = Field(default=False, description="Emit debug diagnostics (auto-finished spans, sampling drops)")
    release: str | None = Field(default=None, description="Application release attached to error events")

    # Breadcrumbs
    max_breadcrumbs: int = Field(default=15, gt=0, description="Breadcrumb ring buffer capacity")
    track_fetch: bool = Field(default=True, description="Record outbound HTTP calls (httpx, urllib)")
    track_navigation: bool = Field(default=True, description="Record screen navigation")
    track_clicks: bool = Field(default=True, description="Record UI clicks")
    track_logging: bool = Field(default=False, description="Record stdlib log records as breadcrumbs")
    before_breadcrumb: Callable[..., Any] | None = Field(
        default=None,
        description="Filter called with (breadcrumb, hint); return None to discard",
    )
    before_send: Callable[..., Any] | None = Field(
        default=None,
        description="Filter called with the event payload; return None to reject it",
    )

    # Performance
    performance: bool = Field(default=False, description="Enable performance monitoring")
    sample_rate: float = Field(default=1.0, description="Probability of sending a transaction in the sampled band")
    threshold_ms: float = Field(default=20.0, ge=0, description="Transactions shorter than this are dropped")
    critical_duration_threshold_ms: float = Field(
        default=1000.0,
        gt=0,
        description="Transactions at least this long are always sent",
    )
    batch_interval_ms: float = Field(default=3000.0, gt=0, description="Interval between performance batch flushes")

    # Transport
    reconnection_attempts: int = Field(default=5, ge=0, description="Automatic reconnection attempts")
    reconnection_timeout_ms: float = Field(default=10_000.0, gt=0, description="Delay between reconnection attempts")
    max_queue_size: int | None = Field(
        default=None,
        gt=0,
        description="Cap on messages queued while disconnected (None = unbounded)",
    )
    request_timeout_seconds: float = Field(default=5.0, gt=0, description="Per-request collector timeout")

    @field_validator("sample_rate", mode="before")
    @classmethod
    def correct_sample_rate(cls, v: Any) -> float:
        """Correct invalid sample rates to 1.0 instead of failing."""
        return normalize_sample_rate(v)


_ENV_PREFIX = "FAULTLINE"
_DYNACONF_KEYS = frozenset({"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"})

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Z_][A-Z0-9_]*)(?::-(?P<default>[^}]*))?\}")


def _substitute(match: re.Match[str]) -> str:
    value = os.environ.get(match["name"], match["default"])
    # Unresolved references stay visible so validation reports them
    return match.group(0) if value is None else value


def _expand(value: Any) -> Any:
    match value:
        case str():
            return _ENV_REFERENCE.sub(_substitute, value)
        case dict():
            return {key: _expand(item) for key, item in value.items()}
        case list():
            return [_expand(item) for item in value]
        case _:
            return value


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Expand ${VAR} and ${VAR:-default} references anywhere in config values."""
    expanded: dict[str, Any] = _expand(config)
    return expanded


def load_settings(config_path: str | Path, **overrides: Any) -> FaultlineSettings:
    """Build client settings from a YAML file, the environment and overrides.

    Later sources win:
    1. FaultlineSettings defaults
    2. The YAML file
    3. FAULTLINE_<FIELD> environment variables (e.g. FAULTLINE_SAMPLE_RATE)
    4. Keyword overrides, the only source for before_breadcrumb and before_send

    Args:
        config_path: YAML file
        **overrides: Field values that win over every other source

    Returns:
        Validated FaultlineSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    path = Path(config_path)
    # Dynaconf ignores missing files
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    loaded = Dynaconf(
        envvar_prefix=_ENV_PREFIX,
        settings_files=[str(path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Keys come back uppercased, mixed with Dynaconf's own options
    values = {key.lower(): value for key, value in loaded.as_dict().items() if key not in _DYNACONF_KEYS}
    values = _expand_env_vars(values)
    values.update(overrides)

    settings = FaultlineSettings(**values)
    logger.debug("Settings loaded", config_path=str(path), overridden=sorted(overrides))
    return settings


def describe_settings(settings: FaultlineSettings) -> dict[str, Any]:
    """Return a loggable view of settings without the token or callables."""
    summary = settings.model_dump(exclude={"token", "before_breadcrumb", "before_send"})
    summary["has_before_breadcrumb"] = settings.before_breadcrumb is not None
    summary["has_before_send"] = settings.before_send is not None
    return summary
