"""Configuration data structures."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from meshscope.errors import ConfigurationError
from meshscope.graph.models import MAX_METRIC_VALUE, CircuitBreakerStatus, ServiceKind


def _frozen(mapping: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(mapping))


def _default_critical_path_weights() -> Mapping[str, float]:
    return _frozen({ServiceKind.GATEWAY: 2.0})


def _default_importance_kind_weights() -> Mapping[str, float]:
    return _frozen(
        {
            ServiceKind.GATEWAY: 100.0,
            ServiceKind.DATABASE: 80.0,
            ServiceKind.BACKEND: 50.0,
            ServiceKind.FRONTEND: 30.0,
        }
    )


def _default_circuit_penalties() -> Mapping[str, float]:
    return _frozen(
        {
            CircuitBreakerStatus.OPEN: 50.0,
            CircuitBreakerStatus.HALF_OPEN: 25.0,
        }
    )


@dataclass(frozen=True)
class AnalysisConfig:
    """Thresholds and weights used by the topology analyzer and health reporter.

    The defaults are empirically chosen; they are meant to be tuned per
    deployment rather than treated as fixed law. Every value is checked on
    construction so that a bad setting is rejected here and never discovered
    halfway through an analysis pass.
    """

    # Critical path: per-kind multiplier applied to a node's request rate.
    # Kinds not listed weigh 1.0.
    critical_path_weights: Mapping[str, float] = field(default_factory=_default_critical_path_weights)

    # Single-point-of-failure heuristics
    spof_database_in_degree: int = 2
    spof_gateway_degree: int = 3
    spof_high_traffic_rps: float = 100.0

    # Bottleneck detection
    bottleneck_p95_latency_ms: float = 200.0
    bottleneck_error_rate_percent: float = 5.0
    bottleneck_request_rate: float = 100.0
    bottleneck_min_dependents: int = 2

    # Importance scoring
    importance_kind_weights: Mapping[str, float] = field(default_factory=_default_importance_kind_weights)
    importance_default_kind_weight: float = 20.0
    importance_circuit_penalties: Mapping[str, float] = field(default_factory=_default_circuit_penalties)

    # Path enumeration ceilings (None = unbounded)
    max_paths: int | None = 10_000
    max_path_length: int | None = None

    # Overview report
    overview_top_n: int = 5
    alert_error_rate_percent: float = 5.0
    alert_p95_latency_ms: float = 100.0

    def __post_init__(self) -> None:
        for name in (
            "spof_database_in_degree",
            "spof_gateway_degree",
            "spof_high_traffic_rps",
            "bottleneck_p95_latency_ms",
            "bottleneck_error_rate_percent",
            "bottleneck_request_rate",
            "bottleneck_min_dependents",
            "importance_default_kind_weight",
            "overview_top_n",
            "alert_error_rate_percent",
            "alert_p95_latency_ms",
        ):
            _check_non_negative(name, getattr(self, name))

        for name in ("max_paths", "max_path_length"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, int) or value < 1):
                raise ConfigurationError(f"{name} must be a positive integer or None, got {value!r}")

        for name, key_type in (
            ("critical_path_weights", ServiceKind),
            ("importance_kind_weights", ServiceKind),
            ("importance_circuit_penalties", CircuitBreakerStatus),
        ):
            table = getattr(self, name)
            coerced: dict[str, float] = {}
            for key, value in table.items():
                try:
                    member = key_type(key)
                except ValueError:
                    raise ConfigurationError(f"{name} has unknown key {key!r}") from None
                _check_non_negative(f"{name}[{key}]", value)
                coerced[member] = float(value)
            # frozen dataclass: replace the caller's mapping with a read-only copy
            object.__setattr__(self, name, _frozen(coerced))

    def critical_path_weight(self, kind: ServiceKind) -> float:
        """Return the critical-path multiplier for *kind*."""
        return self.critical_path_weights.get(kind, 1.0)

    def importance_kind_weight(self, kind: ServiceKind) -> float:
        return self.importance_kind_weights.get(kind, self.importance_default_kind_weight)

    def circuit_penalty(self, status: CircuitBreakerStatus) -> float:
        return self.importance_circuit_penalties.get(status, 0.0)


def _check_non_negative(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if (isinstance(value, float) and not math.isfinite(value)) or value < 0:
        raise ConfigurationError(f"{name} must be a finite non-negative number, got {value!r}")
    if value > MAX_METRIC_VALUE:
        raise ConfigurationError(f"{name} must not exceed {MAX_METRIC_VALUE:g}, got {value!r}")


DEFAULT_ANALYSIS_CONFIG = AnalysisConfig()


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class MeshScopeConfig:
    """Top-level meshscope configuration."""

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
