"""Pydantic models for the snapshot document.

The collector delivers snapshots as JSON documents using the dashboard's
camelCase field names::

    {
      "timestamp": "2026-10-19T12:00:00Z",
      "services": [{"id": "...", "type": "gateway", "metrics": {...}, ...}],
      "connections": [{"id": "...", "source": "...", "target": "...", ...}]
    }

``nodes``/``edges`` are accepted for ``services``/``connections`` and
``sourceId``/``targetId`` for ``source``/``target``. Every rate, latency
and byte count is bounded by ``MAX_METRIC_VALUE`` so whole-mesh sums stay
finite. The REST routes take ``SnapshotDocument`` as their request body;
``to_snapshot()`` turns a validated document into the frozen graph model.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from meshscope.graph.filters import infer_service_kind
from meshscope.graph.models import (
    MAX_METRIC_VALUE,
    CircuitBreaker,
    CircuitBreakerStatus,
    ConnectionMetrics,
    ConnectionSecurity,
    LatencyPercentiles,
    LoadBalancing,
    MeshSnapshot,
    Protocol,
    RetryPolicy,
    ServiceConnection,
    ServiceKind,
    ServiceMetrics,
    ServiceNode,
    ServiceStatus,
)

# strict=True keeps booleans and numeric strings out of number fields.
MetricValue = Annotated[float, Field(ge=0, le=MAX_METRIC_VALUE, strict=True, allow_inf_nan=False)]
Percent = Annotated[float, Field(ge=0, le=100, strict=True, allow_inf_nan=False)]
Count = Annotated[int, Field(ge=0, strict=True)]
PositiveCount = Annotated[int, Field(gt=0, strict=True)]
Text = Annotated[str, Field(strict=True)]
Flag = Annotated[bool, Field(strict=True)]


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class LatencyDocument(_Document):
    p50: MetricValue = 0.0
    p95: MetricValue = 0.0
    p99: MetricValue = 0.0

    @model_validator(mode="after")
    def _ordered(self) -> LatencyDocument:
        if not self.p50 <= self.p95 <= self.p99:
            raise ValueError("percentiles must satisfy p50 <= p95 <= p99")
        return self


class ServiceMetricsDocument(_Document):
    request_rate: MetricValue = Field(default=0.0, alias="requestRate", description="Requests per second.")
    error_rate: Percent = Field(default=0.0, alias="errorRate")
    latency: LatencyDocument = Field(default_factory=LatencyDocument, description="Milliseconds.")
    success_rate: Percent = Field(default=100.0, alias="successRate")


class CircuitBreakerDocument(_Document):
    status: CircuitBreakerStatus = CircuitBreakerStatus.CLOSED
    failure_threshold: PositiveCount = Field(default=5, alias="failureThreshold")
    timeout: PositiveCount = Field(default=30_000, description="Milliseconds.")
    last_tripped: Text | None = Field(default=None, alias="lastTripped")


class ServiceDocument(_Document):
    id: Text
    name: Text | None = None
    namespace: Text = "default"
    version: Text = ""
    kind: Text | None = Field(
        default=None,
        validation_alias=AliasChoices("type", "kind"),
        description="Inferred from labels and name when absent; unknown values decode as 'other'.",
    )
    status: ServiceStatus = ServiceStatus.UNKNOWN
    instances: Count = Field(default=1, validation_alias=AliasChoices("instances", "instanceCount"))
    labels: dict[str, Text] = Field(default_factory=dict)
    metrics: ServiceMetricsDocument = Field(default_factory=ServiceMetricsDocument)
    circuit_breaker: CircuitBreakerDocument = Field(default_factory=CircuitBreakerDocument, alias="circuitBreaker")

    def service_kind(self) -> ServiceKind:
        if self.kind is None:
            return infer_service_kind(self.name or self.id, self.labels)
        try:
            return ServiceKind(self.kind.lower())
        except ValueError:
            return ServiceKind.OTHER

    def to_node(self) -> ServiceNode:
        latency = self.metrics.latency
        breaker = self.circuit_breaker
        return ServiceNode(
            id=self.id,
            name=self.name if self.name is not None else self.id,
            namespace=self.namespace,
            version=self.version,
            kind=self.service_kind(),
            status=self.status,
            instance_count=self.instances,
            metrics=ServiceMetrics(
                request_rate=self.metrics.request_rate,
                error_rate_percent=self.metrics.error_rate,
                latency=LatencyPercentiles(p50=latency.p50, p95=latency.p95, p99=latency.p99),
                success_rate_percent=self.metrics.success_rate,
            ),
            circuit_breaker=CircuitBreaker(
                status=breaker.status,
                failure_threshold=breaker.failure_threshold,
                timeout_ms=breaker.timeout,
                last_tripped_at=breaker.last_tripped,
            ),
        )


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


class ConnectionMetricsDocument(_Document):
    request_rate: MetricValue = Field(default=0.0, alias="requestRate")
    error_rate: Percent = Field(default=0.0, alias="errorRate")
    latency: MetricValue = Field(default=0.0, description="Mean latency in milliseconds.")
    bytes_transferred: MetricValue = Field(default=0.0, alias="bytesTransferred", description="Bytes per second.")


class SecurityDocument(_Document):
    encrypted: Flag = False
    mtls: Flag = Field(default=False, alias="mTLS")
    auth_policy: Text | None = Field(default=None, alias="authPolicy")

    @model_validator(mode="after")
    def _mtls_implies_encryption(self) -> SecurityDocument:
        if self.mtls and not self.encrypted:
            raise ValueError("mTLS requires encrypted to be true")
        return self


class RetryPolicyDocument(_Document):
    attempts: Count = 0
    timeout: Count = 0
    backoff: Text = ""


class ConnectionDocument(_Document):
    id: Text
    source: Text = Field(validation_alias=AliasChoices("source", "sourceId"))
    target: Text = Field(validation_alias=AliasChoices("target", "targetId"))
    protocol: Protocol = Protocol.HTTP
    metrics: ConnectionMetricsDocument = Field(default_factory=ConnectionMetricsDocument)
    security: SecurityDocument = Field(default_factory=SecurityDocument)
    retry_policy: RetryPolicyDocument | None = Field(default=None, alias="retryPolicy")
    load_balancing: LoadBalancing = Field(default=LoadBalancing.ROUND_ROBIN, alias="loadBalancing")

    def to_connection(self) -> ServiceConnection:
        retry = self.retry_policy
        return ServiceConnection(
            id=self.id,
            source_id=self.source,
            target_id=self.target,
            protocol=self.protocol,
            metrics=ConnectionMetrics(
                request_rate=self.metrics.request_rate,
                error_rate_percent=self.metrics.error_rate,
                avg_latency_ms=self.metrics.latency,
                bytes_per_second=self.metrics.bytes_transferred,
            ),
            security=ConnectionSecurity(
                encrypted=self.security.encrypted,
                mtls=self.security.mtls,
                auth_policy=self.security.auth_policy,
            ),
            retry_policy=(
                RetryPolicy(attempts=retry.attempts, timeout_ms=retry.timeout, backoff_strategy=retry.backoff)
                if retry is not None
                else None
            ),
            load_balancing=self.load_balancing,
        )


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class SnapshotDocument(_Document):
    """Mesh snapshot document with services and connections."""

    timestamp: Text | None = Field(default=None, description="ISO-8601 UTC.")
    services: list[ServiceDocument] = Field(
        default_factory=list,
        validation_alias=AliasChoices("services", "nodes"),
    )
    connections: list[ConnectionDocument] = Field(
        default_factory=list,
        validation_alias=AliasChoices("connections", "edges"),
    )

    def to_snapshot(self) -> MeshSnapshot:
        return MeshSnapshot(
            nodes=tuple(doc.to_node() for doc in self.services),
            connections=tuple(doc.to_connection() for doc in self.connections),
            timestamp=self.timestamp or "",
        )
