"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from meshscope.errors import ConfigurationError
from meshscope.models.config import (
    AnalysisConfig,
    APIConfig,
    LogConfig,
    MeshScopeConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"MESHSCOPE_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError:
        raise ConfigurationError(f"MESHSCOPE_{key} must be an integer, got {raw!r}") from None
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    raw = _env(key, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"MESHSCOPE_{key} must be a number, got {raw!r}") from None


def _env_ceiling(key: str, default: int | None) -> int | None:
    """Read a path ceiling; ``none``/``0``/empty disable it."""
    raw = _env(key, "" if default is None else str(default)).strip().lower()
    if raw in ("", "none", "0"):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"MESHSCOPE_{key} must be an integer or 'none', got {raw!r}") from None


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigurationError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_analysis_config() -> AnalysisConfig:
    """Build the analysis thresholds from MESHSCOPE_* overrides of the defaults."""
    d = AnalysisConfig()
    return AnalysisConfig(
        critical_path_weights={
            **d.critical_path_weights,
            "gateway": _env_float("CRITICAL_PATH_GATEWAY_WEIGHT", d.critical_path_weight("gateway")),
        },
        spof_database_in_degree=_env_int("SPOF_DATABASE_IN_DEGREE", d.spof_database_in_degree),
        spof_gateway_degree=_env_int("SPOF_GATEWAY_DEGREE", d.spof_gateway_degree),
        spof_high_traffic_rps=_env_float("SPOF_HIGH_TRAFFIC_RPS", d.spof_high_traffic_rps),
        bottleneck_p95_latency_ms=_env_float("BOTTLENECK_P95_LATENCY_MS", d.bottleneck_p95_latency_ms),
        bottleneck_error_rate_percent=_env_float("BOTTLENECK_ERROR_RATE_PERCENT", d.bottleneck_error_rate_percent),
        bottleneck_request_rate=_env_float("BOTTLENECK_REQUEST_RATE", d.bottleneck_request_rate),
        bottleneck_min_dependents=_env_int("BOTTLENECK_MIN_DEPENDENTS", d.bottleneck_min_dependents),
        importance_kind_weights=d.importance_kind_weights,
        importance_default_kind_weight=_env_float("IMPORTANCE_DEFAULT_KIND_WEIGHT", d.importance_default_kind_weight),
        importance_circuit_penalties=d.importance_circuit_penalties,
        max_paths=_env_ceiling("MAX_PATHS", d.max_paths),
        max_path_length=_env_ceiling("MAX_PATH_LENGTH", d.max_path_length),
        overview_top_n=_env_int("OVERVIEW_TOP_N", d.overview_top_n),
        alert_error_rate_percent=_env_float("ALERT_ERROR_RATE_PERCENT", d.alert_error_rate_percent),
        alert_p95_latency_ms=_env_float("ALERT_P95_LATENCY_MS", d.alert_p95_latency_ms),
    )


def load_config() -> MeshScopeConfig:
    """Load configuration from MESHSCOPE_* environment variables."""
    return MeshScopeConfig(
        analysis=load_analysis_config(),
        api=APIConfig(
            host=_env("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
