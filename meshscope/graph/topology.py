"""Topology analysis over a mesh snapshot.

Critical-path selection, single-point-of-failure detection, bottleneck
detection, per-service importance scoring and dependency-path queries.
Every function accepts either a ``MeshSnapshot`` (validated on entry) or a
``MeshIndex`` that has already been built from one, and reads thresholds
and weights from an ``AnalysisConfig``.
"""

from __future__ import annotations

from meshscope.graph.models import (
    MeshSnapshot,
    ServiceConnection,
    ServiceImportance,
    ServiceKind,
    ServiceNode,
)
from meshscope.graph.paths import enumerate_paths
from meshscope.graph.validation import MeshIndex
from meshscope.models.config import DEFAULT_ANALYSIS_CONFIG, AnalysisConfig
from meshscope.observability.logging import get_logger

_logger = get_logger("graph.topology")


def as_index(source: MeshSnapshot | MeshIndex) -> MeshIndex:
    """Return *source* if it is already an index, otherwise validate and index it."""
    if isinstance(source, MeshIndex):
        return source
    return MeshIndex.build(source)


# ---------------------------------------------------------------------------
# Critical path
# ---------------------------------------------------------------------------


def _path_criticality(index: MeshIndex, path: list[str], config: AnalysisConfig) -> float:
    score = 0.0
    for node_id in path:
        node = index.nodes_by_id[node_id]
        score += node.metrics.request_rate * config.critical_path_weight(node.kind)
    return score


def find_critical_path(
    snapshot: MeshSnapshot | MeshIndex,
    config: AnalysisConfig | None = None,
) -> list[str]:
    """Return the frontend-to-database path with the highest weighted request rate.

    Frontends and databases are visited in snapshot order and paths in
    depth-first order; a later path must score strictly higher to win, so
    ties keep the first one found. Returns ``[]`` when the mesh has no
    frontend, no database, or no path between them.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)

    frontends = index.nodes_of_kind(ServiceKind.FRONTEND)
    databases = index.nodes_of_kind(ServiceKind.DATABASE)
    if not frontends or not databases:
        return []

    best_path: list[str] = []
    best_score: float | None = None
    for frontend in frontends:
        for database in databases:
            for path in enumerate_paths(index, frontend.id, database.id, cfg).paths:
                score = _path_criticality(index, path, cfg)
                if best_score is None or score > best_score:
                    best_score = score
                    best_path = path

    _logger.debug("critical_path_selected", path=best_path, score=best_score)
    return best_path


# ---------------------------------------------------------------------------
# Single points of failure
# ---------------------------------------------------------------------------


def _is_single_point_of_failure(index: MeshIndex, node: ServiceNode, config: AnalysisConfig) -> bool:
    in_degree = index.in_degree(node.id)
    total = index.degree(node.id)

    database_hub = node.kind == ServiceKind.DATABASE and in_degree > config.spof_database_in_degree
    gateway_hub = node.kind == ServiceKind.GATEWAY and total > config.spof_gateway_degree
    high_traffic = node.metrics.request_rate > config.spof_high_traffic_rps and in_degree > 1
    sole_of_kind = index.kind_counts.get(node.kind, 0) == 1 and total > 1

    return database_hub or gateway_hub or high_traffic or sole_of_kind


def find_single_points_of_failure(
    snapshot: MeshSnapshot | MeshIndex,
    config: AnalysisConfig | None = None,
) -> list[str]:
    """Return the ids, in snapshot order, of services whose failure would hit the mesh hardest.

    A service is flagged when any of these holds:
      - it is a database with more than ``spof_database_in_degree`` callers;
      - it is a gateway with more than ``spof_gateway_degree`` connections;
      - it serves more than ``spof_high_traffic_rps`` and has several callers;
      - it is the only service of its kind and has more than one connection.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)
    return [node.id for node in index.snapshot.nodes if _is_single_point_of_failure(index, node, cfg)]


# ---------------------------------------------------------------------------
# Bottlenecks
# ---------------------------------------------------------------------------


def detect_bottlenecks(
    snapshot: MeshSnapshot | MeshIndex,
    config: AnalysisConfig | None = None,
) -> list[str]:
    """Return services that are slow or failing while under load from several dependents."""
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)

    result: list[str] = []
    for node in index.snapshot.nodes:
        metrics = node.metrics
        degraded = (
            metrics.latency.p95 > cfg.bottleneck_p95_latency_ms
            or metrics.error_rate_percent > cfg.bottleneck_error_rate_percent
        )
        busy = metrics.request_rate > cfg.bottleneck_request_rate
        shared = index.in_degree(node.id) > cfg.bottleneck_min_dependents
        if degraded and busy and shared:
            result.append(node.id)
    return result


# ---------------------------------------------------------------------------
# Importance
# ---------------------------------------------------------------------------


def calculate_service_importance(
    node: ServiceNode,
    snapshot: MeshSnapshot | MeshIndex,
    config: AnalysisConfig | None = None,
) -> float:
    """Score how much the mesh depends on *node*. Never negative.

    score = request_rate / 100 + 10 * (in + out degree) + kind weight
            - 5 * error rate - circuit-breaker penalty
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)

    score = node.metrics.request_rate / 100
    score += index.degree(node.id) * 10
    score += cfg.importance_kind_weight(node.kind)
    score -= node.metrics.error_rate_percent * 5
    score -= cfg.circuit_penalty(node.circuit_breaker.status)
    return max(0.0, score)


def rank_services_by_importance(
    snapshot: MeshSnapshot | MeshIndex,
    config: AnalysisConfig | None = None,
) -> list[ServiceImportance]:
    """Score every service; highest first, equal scores in snapshot order."""
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)
    scored = [
        ServiceImportance(service_id=node.id, score=calculate_service_importance(node, index, cfg))
        for node in index.snapshot.nodes
    ]
    return sorted(scored, key=lambda item: -item.score)


# ---------------------------------------------------------------------------
# Dependency paths
# ---------------------------------------------------------------------------


def calculate_dependency_paths(
    snapshot: MeshSnapshot | MeshIndex,
    service_id: str,
    config: AnalysisConfig | None = None,
) -> list[list[str]]:
    """Return every path leading out of and into *service_id*.

    Downstream: for each outgoing connection, all paths from the service to
    that connection's target. Upstream: for each incoming connection, all
    paths from that connection's source to the service. The two sets are
    concatenated in that order and not deduplicated.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    index = as_index(snapshot)

    paths: list[list[str]] = []
    for conn in index.outgoing.get(service_id, ()):
        paths.extend(enumerate_paths(index, service_id, conn.target_id, cfg).paths)
    for conn in index.incoming.get(service_id, ()):
        paths.extend(enumerate_paths(index, conn.source_id, service_id, cfg).paths)
    return paths


def get_service_connections(
    snapshot: MeshSnapshot | MeshIndex,
    service_id: str,
) -> list[ServiceConnection]:
    """Return the connections that start or end at *service_id*, in snapshot order."""
    index = as_index(snapshot)
    return [
        conn for conn in index.snapshot.connections if conn.source_id == service_id or conn.target_id == service_id
    ]
