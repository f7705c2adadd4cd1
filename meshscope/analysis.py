"""Single-pass analysis of a mesh snapshot.

``analyze_snapshot`` validates once, builds the adjacency index once, and
hands that index to every analyzer. This is the entry point the REST API
and the CLI use; the individual analyzers in ``meshscope.graph`` remain
available for callers that need only one view.
"""

from __future__ import annotations

import time

from meshscope.errors import SnapshotValidationError
from meshscope.graph.health import analyze_mesh_health, build_mesh_overview, traffic_flow_metrics
from meshscope.graph.models import MeshAnalysis, MeshSnapshot
from meshscope.graph.topology import (
    detect_bottlenecks,
    find_critical_path,
    find_single_points_of_failure,
    rank_services_by_importance,
)
from meshscope.graph.validation import MeshIndex
from meshscope.models.config import DEFAULT_ANALYSIS_CONFIG, AnalysisConfig
from meshscope.observability.logging import bind_snapshot_context, clear_snapshot_context, get_logger
from meshscope.observability.metrics import analysis_duration_seconds, analysis_runs_total

_logger = get_logger("analysis")


def analyze_snapshot(snapshot: MeshSnapshot, config: AnalysisConfig | None = None) -> MeshAnalysis:
    """Compute every derived view of *snapshot*.

    Raises:
        SnapshotValidationError: before any analyzer runs, if the snapshot has
            dangling edges or duplicate node ids.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    start = time.monotonic()
    bind_snapshot_context(snapshot.timestamp, len(snapshot.nodes), len(snapshot.connections))
    try:
        try:
            index = MeshIndex.build(snapshot)
        except SnapshotValidationError as exc:
            analysis_runs_total.labels(outcome="rejected").inc()
            _logger.warning(
                "mesh_snapshot_rejected",
                dangling_edges=exc.dangling_edges,
                duplicate_node_ids=exc.duplicate_node_ids,
            )
            raise

        result = MeshAnalysis(
            health=analyze_mesh_health(index),
            traffic=traffic_flow_metrics(snapshot.connections),
            overview=build_mesh_overview(index, cfg),
            critical_path=find_critical_path(index, cfg),
            single_points_of_failure=find_single_points_of_failure(index, cfg),
            bottlenecks=detect_bottlenecks(index, cfg),
            importance=rank_services_by_importance(index, cfg),
            timestamp=snapshot.timestamp,
        )

        elapsed = time.monotonic() - start
        analysis_runs_total.labels(outcome="ok").inc()
        analysis_duration_seconds.observe(elapsed)
        _logger.info(
            "mesh_analysis_completed",
            critical_path_length=len(result.critical_path),
            spof_count=len(result.single_points_of_failure),
            bottleneck_count=len(result.bottlenecks),
            duration_ms=round(elapsed * 1000, 2),
        )
        return result
    finally:
        clear_snapshot_context()
