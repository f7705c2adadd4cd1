"""Shared factories and fixtures for meshscope tests.

Factories build fully-formed graph-model objects with sensible defaults so
each test only spells out the attributes it is actually about.
"""

from __future__ import annotations

import pytest

from meshscope.graph.models import (
    CircuitBreaker,
    CircuitBreakerStatus,
    ConnectionMetrics,
    ConnectionSecurity,
    LatencyPercentiles,
    MeshSnapshot,
    Protocol,
    ServiceConnection,
    ServiceKind,
    ServiceMetrics,
    ServiceNode,
    ServiceStatus,
)

_TS = "2026-10-19T12:00:00Z"


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


def make_node(
    node_id: str,
    kind: ServiceKind = ServiceKind.BACKEND,
    request_rate: float = 10.0,
    error_rate: float = 0.0,
    p95: float = 50.0,
    status: ServiceStatus = ServiceStatus.HEALTHY,
    breaker: CircuitBreakerStatus = CircuitBreakerStatus.CLOSED,
    namespace: str = "default",
    version: str = "v1",
    name: str | None = None,
) -> ServiceNode:
    """Create a ServiceNode with sensible defaults for testing."""
    return ServiceNode(
        id=node_id,
        name=name or node_id,
        namespace=namespace,
        version=version,
        kind=kind,
        status=status,
        instance_count=1,
        metrics=ServiceMetrics(
            request_rate=request_rate,
            error_rate_percent=error_rate,
            latency=LatencyPercentiles(p50=min(10.0, p95), p95=p95, p99=p95 * 2),
            success_rate_percent=100.0 - error_rate,
        ),
        circuit_breaker=CircuitBreaker(
            status=breaker,
            failure_threshold=5,
            timeout_ms=30_000,
            last_tripped_at=_TS if breaker != CircuitBreakerStatus.CLOSED else None,
        ),
    )


def make_conn(
    source: str,
    target: str,
    conn_id: str | None = None,
    request_rate: float = 10.0,
    error_rate: float = 0.0,
    latency: float = 20.0,
    encrypted: bool = True,
    mtls: bool = True,
    protocol: Protocol = Protocol.HTTP,
) -> ServiceConnection:
    """Create a ServiceConnection; the id defaults to ``source->target``."""
    return ServiceConnection(
        id=conn_id or f"{source}->{target}",
        source_id=source,
        target_id=target,
        protocol=protocol,
        metrics=ConnectionMetrics(
            request_rate=request_rate,
            error_rate_percent=error_rate,
            avg_latency_ms=latency,
            bytes_per_second=1024.0,
        ),
        security=ConnectionSecurity(encrypted=encrypted or mtls, mtls=mtls),
    )


def make_snapshot(
    nodes: list[ServiceNode],
    connections: list[ServiceConnection] | None = None,
) -> MeshSnapshot:
    return MeshSnapshot(nodes=tuple(nodes), connections=tuple(connections or []), timestamp=_TS)


def chain_snapshot(*edges: tuple[str, str]) -> MeshSnapshot:
    """Snapshot of backend nodes wired by *edges*; node order follows first appearance."""
    ids: list[str] = []
    for source, target in edges:
        for node_id in (source, target):
            if node_id not in ids:
                ids.append(node_id)
    return make_snapshot([make_node(i) for i in ids], [make_conn(s, t) for s, t in edges])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def shop_mesh() -> MeshSnapshot:
    """A small storefront mesh.

    web (frontend) -> edge (gateway) -> orders (backend) -> orders-db (database)
                                     -> catalog (backend) -> orders-db
                                                          -> redis (cache)
    orders -> catalog
    """
    nodes = [
        make_node("web", ServiceKind.FRONTEND, request_rate=150.0),
        make_node("edge", ServiceKind.GATEWAY, request_rate=400.0, error_rate=1.5),
        make_node("orders", ServiceKind.BACKEND, request_rate=220.0, p95=240.0),
        make_node("catalog", ServiceKind.BACKEND, request_rate=300.0),
        make_node(
            "orders-db",
            ServiceKind.DATABASE,
            request_rate=500.0,
            p95=35.0,
            status=ServiceStatus.WARNING,
        ),
        make_node(
            "redis",
            ServiceKind.CACHE,
            request_rate=900.0,
            p95=4.0,
            breaker=CircuitBreakerStatus.HALF_OPEN,
        ),
    ]
    connections = [
        make_conn("web", "edge", request_rate=150.0),
        make_conn("edge", "orders", request_rate=200.0),
        make_conn("edge", "catalog", request_rate=200.0, mtls=False),
        make_conn("orders", "orders-db", request_rate=180.0),
        make_conn("catalog", "orders-db", request_rate=160.0),
        make_conn("catalog", "redis", request_rate=400.0, encrypted=False, mtls=False),
        make_conn("orders", "catalog", request_rate=40.0),
    ]
    return make_snapshot(nodes, connections)
