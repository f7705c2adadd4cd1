"""End-to-end runs: snapshot document -> decode -> validate -> every analyzer."""

from __future__ import annotations

import json

import pytest

from meshscope.analysis import analyze_snapshot
from meshscope.errors import SnapshotValidationError
from meshscope.graph.codec import snapshot_from_dict, snapshot_to_dict
from meshscope.graph.health import analyze_mesh_health, build_mesh_overview
from meshscope.graph.models import MeshSnapshot, ServiceKind
from meshscope.graph.topology import (
    detect_bottlenecks,
    find_critical_path,
    find_single_points_of_failure,
    rank_services_by_importance,
)
from meshscope.models.config import AnalysisConfig

from ..conftest import make_conn, make_node, make_snapshot

pytestmark = pytest.mark.integration


class TestAnalyzeSnapshot:
    def test_matches_individual_analyzers(self, shop_mesh: MeshSnapshot) -> None:
        result = analyze_snapshot(shop_mesh)
        assert result.critical_path == find_critical_path(shop_mesh)
        assert result.single_points_of_failure == find_single_points_of_failure(shop_mesh)
        assert result.bottlenecks == detect_bottlenecks(shop_mesh)
        assert result.importance == rank_services_by_importance(shop_mesh)
        assert result.health == analyze_mesh_health(shop_mesh)
        assert result.overview == build_mesh_overview(shop_mesh)
        assert result.timestamp == shop_mesh.timestamp

    def test_is_idempotent(self, shop_mesh: MeshSnapshot) -> None:
        assert analyze_snapshot(shop_mesh) == analyze_snapshot(shop_mesh)

    def test_output_is_strict_json(self, shop_mesh: MeshSnapshot) -> None:
        # allow_nan=False fails on NaN or Infinity anywhere in the document
        json.dumps(analyze_snapshot(shop_mesh).to_dict(), allow_nan=False)
        json.dumps(analyze_snapshot(MeshSnapshot()).to_dict(), allow_nan=False)

    def test_rejects_invalid_snapshot_before_analysis(self) -> None:
        mesh = make_snapshot([make_node("a"), make_node("a")])
        with pytest.raises(SnapshotValidationError) as exc_info:
            analyze_snapshot(mesh)
        assert exc_info.value.duplicate_node_ids == ["a"]

    def test_config_flows_to_every_analyzer(self, shop_mesh: MeshSnapshot) -> None:
        cfg = AnalysisConfig(
            bottleneck_p95_latency_ms=10.0,
            bottleneck_request_rate=100.0,
            bottleneck_min_dependents=1,
            overview_top_n=1,
        )
        result = analyze_snapshot(shop_mesh, cfg)
        assert result.bottlenecks == ["catalog", "orders-db"]
        assert result.overview.top_by_request_rate == ["redis"]

    def test_snapshot_survives_document_round_trip(self, shop_mesh: MeshSnapshot) -> None:
        decoded = snapshot_from_dict(json.loads(json.dumps(snapshot_to_dict(shop_mesh))))
        assert analyze_snapshot(decoded).to_dict() == analyze_snapshot(shop_mesh).to_dict()


class TestLayeredMesh:
    """A four-tier mesh with a shared gateway and two data stores."""

    @pytest.fixture
    def mesh(self) -> MeshSnapshot:
        nodes = [
            make_node("web", ServiceKind.FRONTEND, request_rate=120.0),
            make_node("mobile-bff", ServiceKind.FRONTEND, request_rate=80.0),
            make_node("gw", ServiceKind.GATEWAY, request_rate=200.0),
            make_node("users", request_rate=90.0),
            make_node("billing", request_rate=60.0, p95=320.0),
            make_node("search", request_rate=150.0, p95=260.0),
            make_node("pg", ServiceKind.DATABASE, request_rate=300.0),
            make_node("es", ServiceKind.DATABASE, request_rate=140.0),
        ]
        edges = [
            make_conn("web", "gw"),
            make_conn("mobile-bff", "gw"),
            make_conn("gw", "users"),
            make_conn("gw", "billing"),
            make_conn("gw", "search"),
            make_conn("users", "pg"),
            make_conn("billing", "pg"),
            make_conn("search", "es"),
            make_conn("users", "search"),
            make_conn("billing", "search"),
        ]
        return make_snapshot(nodes, edges)

    def test_critical_path_picks_heaviest_route(self, mesh: MeshSnapshot) -> None:
        # web(120) + gw(2 * 200) + users(90) + pg(300) = 910 beats the route to es (900)
        assert find_critical_path(mesh) == ["web", "gw", "users", "pg"]

    def test_single_points_of_failure(self, mesh: MeshSnapshot) -> None:
        # gw: only gateway; search and pg: over 100 rps with several callers
        assert find_single_points_of_failure(mesh) == ["gw", "search", "pg"]

    def test_bottlenecks(self, mesh: MeshSnapshot) -> None:
        # billing is slow but quiet and has one caller
        assert detect_bottlenecks(mesh) == ["search"]

    def test_importance_ranks_gateway_first(self, mesh: MeshSnapshot) -> None:
        ranking = rank_services_by_importance(mesh)
        assert ranking[0].service_id == "gw"
        assert all(item.score >= 0 for item in ranking)
