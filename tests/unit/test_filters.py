"""Tests for service list filtering, search, sorting and kind inference."""

from __future__ import annotations

import pytest

from meshscope.graph.filters import (
    SERVICE_TYPE_LABEL,
    filter_services,
    filter_services_by_health,
    infer_service_kind,
    search_services,
    sort_services,
    unique_kinds,
    unique_namespaces,
)
from meshscope.graph.models import CircuitBreakerStatus, MeshSnapshot, ServiceKind, ServiceStatus

from ..conftest import make_node


class TestInferServiceKind:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("api-gateway", ServiceKind.GATEWAY),
            ("envoy-proxy", ServiceKind.GATEWAY),
            ("nginx-ingress", ServiceKind.GATEWAY),
            ("istio-sidecar", ServiceKind.SIDECAR),
            ("orders-postgres", ServiceKind.DATABASE),
            ("users-db", ServiceKind.DATABASE),
            ("session-redis", ServiceKind.CACHE),
            ("web-ui", ServiceKind.FRONTEND),
            ("Payments-API", ServiceKind.BACKEND),
            ("ledger", ServiceKind.BACKEND),
        ],
    )
    def test_by_name(self, name: str, expected: ServiceKind) -> None:
        assert infer_service_kind(name) == expected

    def test_label_overrides_name(self) -> None:
        assert infer_service_kind("api-gateway", {SERVICE_TYPE_LABEL: "Database"}) == ServiceKind.DATABASE

    def test_unknown_label_value(self) -> None:
        assert infer_service_kind("api", {SERVICE_TYPE_LABEL: "queue"}) == ServiceKind.OTHER

    def test_unrelated_labels_are_ignored(self) -> None:
        assert infer_service_kind("redis", {"app": "frontend"}) == ServiceKind.CACHE


class TestFilterServices:
    def test_by_kind(self, shop_mesh: MeshSnapshot) -> None:
        result = filter_services(shop_mesh.nodes, ServiceKind.BACKEND)
        assert [n.id for n in result] == ["orders", "catalog"]

    def test_all_with_query(self, shop_mesh: MeshSnapshot) -> None:
        assert [n.id for n in filter_services(shop_mesh.nodes, query="ORDERS")] == ["orders", "orders-db"]

    def test_query_matches_kind(self, shop_mesh: MeshSnapshot) -> None:
        assert [n.id for n in filter_services(shop_mesh.nodes, query="cache")] == ["redis"]

    def test_input_is_not_modified(self, shop_mesh: MeshSnapshot) -> None:
        nodes = list(shop_mesh.nodes)
        filter_services(nodes, ServiceKind.DATABASE)
        assert nodes == list(shop_mesh.nodes)


class TestSearchServices:
    def test_matches_status_and_version(self) -> None:
        nodes = [make_node("a", status=ServiceStatus.WARNING), make_node("b", version="v2-canary")]
        assert [n.id for n in search_services(nodes, "warn")] == ["a"]
        assert [n.id for n in search_services(nodes, "CANARY")] == ["b"]

    def test_empty_query_returns_everything(self, shop_mesh: MeshSnapshot) -> None:
        assert search_services(shop_mesh.nodes, "") == list(shop_mesh.nodes)


class TestFilterServicesByHealth:
    def _nodes(self) -> list:
        return [
            make_node("ok"),
            make_node("noisy", error_rate=3.0),
            make_node("flagged", status=ServiceStatus.WARNING),
            make_node("failing", error_rate=8.0),
            make_node("tripped", breaker=CircuitBreakerStatus.OPEN),
        ]

    def test_healthy(self) -> None:
        assert [n.id for n in filter_services_by_health(self._nodes(), "healthy")] == ["ok", "tripped"]

    def test_warning(self) -> None:
        assert [n.id for n in filter_services_by_health(self._nodes(), "warning")] == ["noisy", "flagged"]

    def test_error(self) -> None:
        assert [n.id for n in filter_services_by_health(self._nodes(), "error")] == ["failing", "tripped"]

    def test_all(self) -> None:
        assert len(filter_services_by_health(self._nodes(), "all")) == 5


class TestSortServices:
    def test_by_request_rate_desc(self, shop_mesh: MeshSnapshot) -> None:
        result = sort_services(shop_mesh.nodes, "rps", "desc")
        assert [n.id for n in result][:3] == ["redis", "orders-db", "edge"]

    def test_name_is_case_insensitive(self) -> None:
        nodes = [make_node("1", name="beta"), make_node("2", name="Alpha"), make_node("3", name="gamma")]
        assert [n.name for n in sort_services(nodes, "name")] == ["Alpha", "beta", "gamma"]

    def test_stable_for_equal_keys(self) -> None:
        nodes = [make_node("x", request_rate=5.0), make_node("y", request_rate=5.0), make_node("z", request_rate=1.0)]
        assert [n.id for n in sort_services(nodes, "rps")] == ["z", "x", "y"]

    def test_unknown_key_sorts_by_name(self) -> None:
        nodes = [make_node("b"), make_node("a")]
        assert [n.id for n in sort_services(nodes, "bogus")] == ["a", "b"]

    def test_returns_new_list(self, shop_mesh: MeshSnapshot) -> None:
        nodes = list(shop_mesh.nodes)
        result = sort_services(nodes, "name")
        assert result is not nodes
        assert nodes == list(shop_mesh.nodes)


def test_unique_namespaces_and_kinds() -> None:
    nodes = [
        make_node("a", ServiceKind.CACHE, namespace="prod"),
        make_node("b", ServiceKind.BACKEND, namespace="dev"),
        make_node("c", ServiceKind.BACKEND, namespace="prod"),
    ]
    assert unique_namespaces(nodes) == ["dev", "prod"]
    assert unique_kinds(nodes) == ["backend", "cache"]
