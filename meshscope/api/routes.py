"""REST routes for meshscope.

Every analysis route takes a snapshot document in the request body. The
handlers are plain ``def`` functions so FastAPI runs them in its
threadpool; the engine is synchronous and the snapshot is immutable, so
concurrent requests need no locking.
"""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from meshscope.analysis import analyze_snapshot
from meshscope.api.schemas import (
    DependencyResponse,
    ErrorResponse,
    HealthResponse,
    HealthSummaryResponse,
    ServiceListResponse,
)
from meshscope.graph.codec import connection_to_dict, service_to_dict
from meshscope.graph.documents import SnapshotDocument
from meshscope.graph.health import analyze_mesh_health, traffic_flow_metrics
from meshscope.graph.filters import (
    HealthFilter,
    filter_services,
    filter_services_by_health,
    search_services,
    sort_services,
    unique_kinds,
    unique_namespaces,
)
from meshscope.graph.models import MeshSnapshot, ServiceKind
from meshscope.graph.paths import enumerate_paths
from meshscope.graph.topology import (
    calculate_dependency_paths,
    calculate_service_importance,
    get_service_connections,
)
from meshscope.graph.validation import MeshIndex
from meshscope.models.config import AnalysisConfig

router = APIRouter()

SnapshotDoc = Annotated[SnapshotDocument, Body(description="Mesh snapshot document with services and connections.")]


def _analysis_config(request: Request) -> AnalysisConfig:
    return request.app.state.analysis_config


def _decode(doc: SnapshotDocument) -> MeshSnapshot:
    # Malformed bodies never get here: FastAPI raises RequestValidationError,
    # which the app maps to 400 INVALID_SNAPSHOT.
    return doc.to_snapshot()


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    from meshscope import __version__

    return HealthResponse(version=__version__)


@router.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.post("/analyze", response_model=None)
def analyze(request: Request, doc: SnapshotDoc) -> dict[str, object]:
    """Run every analyzer over the posted snapshot."""
    return analyze_snapshot(_decode(doc), _analysis_config(request)).to_dict()


@router.post("/health-summary", response_model=HealthSummaryResponse)
def health_summary(doc: SnapshotDoc) -> HealthSummaryResponse:
    snapshot = _decode(doc)
    return HealthSummaryResponse(
        health=analyze_mesh_health(snapshot).to_dict(),
        traffic=traffic_flow_metrics(snapshot.connections).to_dict(),
    )


@router.post("/paths", response_model=None)
def paths(
    request: Request,
    source: Annotated[str, Query(min_length=1)],
    target: Annotated[str, Query(min_length=1)],
    doc: SnapshotDoc,
) -> dict[str, object] | JSONResponse:
    """Enumerate simple paths between two services."""
    index = MeshIndex.build(_decode(doc))
    for service_id in (source, target):
        if service_id not in index.nodes_by_id:
            return _service_not_found(service_id)
    return enumerate_paths(index, source, target, _analysis_config(request)).to_dict()


@router.post("/services", response_model=ServiceListResponse)
def list_services(
    doc: SnapshotDoc,
    kind: ServiceKind | None = None,
    q: Annotated[str | None, Query(max_length=200)] = None,
    health: HealthFilter = "all",
    sort: str = "name",
    order: Literal["asc", "desc"] = "asc",
) -> ServiceListResponse:
    """List services narrowed by kind, free-text query and health bucket.

    Unknown sort keys sort by name. The namespace and kind facets cover the
    whole snapshot so a client can offer every choice while filtered.
    """
    nodes = _decode(doc).nodes
    selected = filter_services(nodes, kind or "all")
    selected = search_services(selected, q or "")
    selected = filter_services_by_health(selected, health)
    return ServiceListResponse(
        total=len(nodes),
        services=[service_to_dict(node) for node in sort_services(selected, sort, order)],
        namespaces=unique_namespaces(nodes),
        kinds=unique_kinds(nodes),
    )


@router.post("/services/{service_id}/dependencies", response_model=None)
def dependencies(
    request: Request,
    service_id: str,
    doc: SnapshotDoc,
) -> dict[str, object] | JSONResponse:
    """Dependency paths, importance score and connections of one service."""
    cfg = _analysis_config(request)
    index = MeshIndex.build(_decode(doc))
    node = index.nodes_by_id.get(service_id)
    if node is None:
        return _service_not_found(service_id)
    return DependencyResponse(
        service_id=service_id,
        importance=calculate_service_importance(node, index, cfg),
        paths=calculate_dependency_paths(index, service_id, cfg),
        connections=[connection_to_dict(c) for c in get_service_connections(index, service_id)],
    ).model_dump(by_alias=True)


def _service_not_found(service_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(
            error="SERVICE_NOT_FOUND",
            detail=f"Service '{service_id}' is not in the snapshot.",
        ).model_dump(exclude_none=True),
    )
