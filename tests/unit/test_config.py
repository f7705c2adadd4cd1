"""Tests for AnalysisConfig validation and environment loading."""

from __future__ import annotations

import math

import pytest

from meshscope.config import load_analysis_config, load_config
from meshscope.errors import ConfigurationError
from meshscope.graph.models import MAX_METRIC_VALUE, CircuitBreakerStatus, ServiceKind
from meshscope.models.config import AnalysisConfig


class TestAnalysisConfigValidation:
    def test_defaults(self) -> None:
        cfg = AnalysisConfig()
        assert cfg.critical_path_weight(ServiceKind.GATEWAY) == 2.0
        assert cfg.critical_path_weight(ServiceKind.BACKEND) == 1.0
        assert cfg.importance_kind_weight(ServiceKind.CACHE) == 20.0
        assert cfg.circuit_penalty(CircuitBreakerStatus.CLOSED) == 0.0
        assert cfg.max_paths == 10_000
        assert cfg.max_path_length is None

    @pytest.mark.parametrize(
        "field",
        ["spof_database_in_degree", "spof_high_traffic_rps", "bottleneck_p95_latency_ms", "overview_top_n"],
    )
    def test_negative_threshold_rejected(self, field: str) -> None:
        with pytest.raises(ConfigurationError, match=field):
            AnalysisConfig(**{field: -1})

    @pytest.mark.parametrize("value", [math.nan, math.inf, "5", True])
    def test_non_finite_or_non_numeric_rejected(self, value: object) -> None:
        with pytest.raises(ConfigurationError):
            AnalysisConfig(bottleneck_error_rate_percent=value)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", [0, -3, 2.5])
    def test_bad_ceiling_rejected(self, value: object) -> None:
        with pytest.raises(ConfigurationError, match="max_paths"):
            AnalysisConfig(max_paths=value)  # type: ignore[arg-type]

    def test_unknown_kind_in_weight_table_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="queue"):
            AnalysisConfig(importance_kind_weights={"queue": 10.0})

    def test_negative_weight_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            AnalysisConfig(critical_path_weights={"gateway": -2.0})

    @pytest.mark.parametrize("value", [1e300, 10**400])
    def test_weight_above_metric_ceiling_rejected(self, value: float) -> None:
        # rate * weight must stay finite for the critical path score
        with pytest.raises(ConfigurationError, match="must not exceed"):
            AnalysisConfig(critical_path_weights={"gateway": value})

    def test_threshold_at_metric_ceiling_accepted(self) -> None:
        assert AnalysisConfig(bottleneck_request_rate=MAX_METRIC_VALUE).bottleneck_request_rate == MAX_METRIC_VALUE

    def test_weight_tables_are_read_only(self) -> None:
        source = {"gateway": 3.0}
        cfg = AnalysisConfig(critical_path_weights=source)
        source["gateway"] = 99.0
        assert cfg.critical_path_weight(ServiceKind.GATEWAY) == 3.0
        with pytest.raises(TypeError):
            cfg.critical_path_weights["gateway"] = 1.0  # type: ignore[index]

    def test_configuration_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            AnalysisConfig(max_path_length=0)


class TestLoadConfig:
    def test_defaults_without_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in ("MESHSCOPE_API_PORT", "MESHSCOPE_LOG_LEVEL", "MESHSCOPE_MAX_PATHS"):
            monkeypatch.delenv(key, raising=False)
        config = load_config()
        assert config.api.port == 8080
        assert config.log.level == "info"
        assert config.analysis == AnalysisConfig()

    def test_thresholds_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHSCOPE_SPOF_DATABASE_IN_DEGREE", "4")
        monkeypatch.setenv("MESHSCOPE_CRITICAL_PATH_GATEWAY_WEIGHT", "3.5")
        monkeypatch.setenv("MESHSCOPE_ALERT_P95_LATENCY_MS", "250")
        cfg = load_analysis_config()
        assert cfg.spof_database_in_degree == 4
        assert cfg.critical_path_weight(ServiceKind.GATEWAY) == 3.5
        assert cfg.alert_p95_latency_ms == 250.0

    @pytest.mark.parametrize("raw", ["none", "0", ""])
    def test_ceiling_can_be_disabled(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv("MESHSCOPE_MAX_PATHS", raw)
        assert load_analysis_config().max_paths is None

    def test_ceiling_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHSCOPE_MAX_PATH_LENGTH", "12")
        assert load_analysis_config().max_path_length == 12

    def test_non_numeric_value_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHSCOPE_BOTTLENECK_MIN_DEPENDENTS", "many")
        with pytest.raises(ConfigurationError, match="MESHSCOPE_BOTTLENECK_MIN_DEPENDENTS"):
            load_analysis_config()

    def test_negative_value_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHSCOPE_SPOF_HIGH_TRAFFIC_RPS", "-10")
        with pytest.raises(ConfigurationError):
            load_analysis_config()

    def test_port_is_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHSCOPE_API_PORT", "80")
        assert load_config().api.port == 1024

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHSCOPE_LOG_LEVEL", "verbose")
        with pytest.raises(ConfigurationError, match="log level"):
            load_config()
