"""Whole-mesh aggregates: health summary, traffic flow and the overview report.

Means over empty collections are defined as zero so no output ever carries
NaN or Infinity.
"""

from __future__ import annotations

from collections.abc import Sequence

from meshscope.graph.models import (
    CircuitBreakerStatus,
    MeshAlerts,
    MeshHealthSummary,
    MeshOverview,
    MeshSnapshot,
    ServiceConnection,
    ServiceStatus,
    TrafficFlowMetrics,
)
from meshscope.graph.topology import as_index
from meshscope.graph.validation import MeshIndex
from meshscope.models.config import DEFAULT_ANALYSIS_CONFIG, AnalysisConfig


def _mean(total: float, count: int) -> float:
    return total / count if count else 0.0


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def analyze_mesh_health(snapshot: MeshSnapshot | MeshIndex) -> MeshHealthSummary:
    """Summarise service status, circuit breakers, connection security and traffic."""
    index = as_index(snapshot)
    nodes = index.snapshot.nodes
    connections = index.snapshot.connections

    status_counts = dict.fromkeys(ServiceStatus, 0)
    open_breakers = 0
    latency_total = 0.0
    error_total = 0.0
    request_total = 0.0
    for node in nodes:
        status_counts[node.status] += 1
        if node.circuit_breaker.status == CircuitBreakerStatus.OPEN:
            open_breakers += 1
        latency_total += node.metrics.latency.p95
        error_total += node.metrics.error_rate_percent
        request_total += node.metrics.request_rate

    return MeshHealthSummary(
        total_services=len(nodes),
        healthy_services=status_counts[ServiceStatus.HEALTHY],
        warning_services=status_counts[ServiceStatus.WARNING],
        error_services=status_counts[ServiceStatus.ERROR],
        unknown_services=status_counts[ServiceStatus.UNKNOWN],
        open_circuit_breakers=open_breakers,
        total_connections=len(connections),
        encrypted_connections=sum(1 for c in connections if c.security.encrypted),
        mtls_connections=sum(1 for c in connections if c.security.mtls),
        avg_latency_ms=_mean(latency_total, len(nodes)),
        avg_error_rate_percent=_mean(error_total, len(nodes)),
        total_request_rate=request_total,
    )


def traffic_flow_metrics(connections: Sequence[ServiceConnection]) -> TrafficFlowMetrics:
    """Aggregate request rate, latency, error rate and security over *connections*."""
    if not connections:
        return TrafficFlowMetrics()

    count = len(connections)
    return TrafficFlowMetrics(
        total_traffic=sum(c.metrics.request_rate for c in connections),
        avg_latency_ms=_mean(sum(c.metrics.avg_latency_ms for c in connections), count),
        avg_error_rate_percent=_mean(sum(c.metrics.error_rate_percent for c in connections), count),
        encrypted_percentage=_percentage(sum(1 for c in connections if c.security.encrypted), count),
        mtls_percentage=_percentage(sum(1 for c in connections if c.security.mtls), count),
    )


def build_mesh_overview(
    snapshot: MeshSnapshot | MeshIndex,
    config: AnalysisConfig | None = None,
) -> MeshOverview:
    """Build the dashboard overview: mTLS coverage, top services and alert lists.

    Top-N lists sort by descending metric; services with equal values keep
    snapshot order.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)
    nodes = index.snapshot.nodes
    connections = index.snapshot.connections
    top_n = cfg.overview_top_n

    by_rate = sorted(nodes, key=lambda n: -n.metrics.request_rate)[:top_n]
    by_errors = sorted(nodes, key=lambda n: -n.metrics.error_rate_percent)[:top_n]

    alerts = MeshAlerts(
        open_circuit_breakers=[n.id for n in nodes if n.circuit_breaker.status == CircuitBreakerStatus.OPEN],
        high_error_rate=[n.id for n in nodes if n.metrics.error_rate_percent > cfg.alert_error_rate_percent],
        high_latency=[n.id for n in nodes if n.metrics.latency.p95 > cfg.alert_p95_latency_ms],
        security_issues=[c.id for c in connections if not c.security.encrypted or not c.security.mtls],
    )

    return MeshOverview(
        mtls_coverage_percent=_percentage(sum(1 for c in connections if c.security.mtls), len(connections)),
        top_by_request_rate=[n.id for n in by_rate],
        top_by_error_rate=[n.id for n in by_errors],
        alerts=alerts,
    )
