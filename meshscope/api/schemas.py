"""Pydantic envelopes for the REST API.

Request bodies are ``meshscope.graph.documents.SnapshotDocument``; this
module holds the response envelopes.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned for every non-2xx response."""

    error: str
    detail: str
    dangling_edges: list[str] | None = None
    duplicate_node_ids: list[str] | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class HealthSummaryResponse(BaseModel):
    health: dict[str, Any]
    traffic: dict[str, Any]


class ServiceListResponse(BaseModel):
    """Filtered, sorted services plus facets over the whole snapshot."""

    total: int
    services: list[dict[str, Any]]
    namespaces: list[str]
    kinds: list[str]


class DependencyResponse(BaseModel):
    service_id: str = Field(serialization_alias="serviceId")
    importance: float
    paths: list[list[str]]
    connections: list[dict[str, Any]]
