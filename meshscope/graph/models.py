"""Data structures for the service-mesh graph and the views derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

# Upper bound on any single rate, latency or byte count accepted from a
# snapshot document or used as an analysis threshold; keeps sums finite.
MAX_METRIC_VALUE = 1e12


class ServiceKind(StrEnum):
    """Role a service plays in the mesh."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"
    CACHE = "cache"
    GATEWAY = "gateway"
    SIDECAR = "sidecar"
    OTHER = "other"


class ServiceStatus(StrEnum):
    """Reported health of a service."""

    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"


class CircuitBreakerStatus(StrEnum):
    """State of a service's circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class Protocol(StrEnum):
    """Wire protocol of a connection."""

    HTTP = "HTTP"
    GRPC = "gRPC"
    TCP = "TCP"
    UDP = "UDP"


class LoadBalancing(StrEnum):
    """Load-balancing policy applied on a connection."""

    ROUND_ROBIN = "round_robin"
    LEAST_CONN = "least_conn"
    RANDOM = "random"
    WEIGHTED = "weighted"


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LatencyPercentiles:
    """Observed response latency percentiles in milliseconds."""

    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


@dataclass(frozen=True)
class ServiceMetrics:
    request_rate: float = 0.0  # req/s
    error_rate_percent: float = 0.0
    latency: LatencyPercentiles = field(default_factory=LatencyPercentiles)
    success_rate_percent: float = 100.0


@dataclass(frozen=True)
class CircuitBreaker:
    status: CircuitBreakerStatus = CircuitBreakerStatus.CLOSED
    failure_threshold: int = 5
    timeout_ms: int = 30_000
    last_tripped_at: str | None = None  # ISO-8601, only once the breaker has opened


@dataclass(frozen=True)
class ServiceNode:
    """A deployable unit in the mesh."""

    id: str
    name: str
    namespace: str = "default"
    version: str = ""
    kind: ServiceKind = ServiceKind.OTHER
    status: ServiceStatus = ServiceStatus.UNKNOWN
    instance_count: int = 1
    metrics: ServiceMetrics = field(default_factory=ServiceMetrics)
    circuit_breaker: CircuitBreaker = field(default_factory=CircuitBreaker)


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConnectionMetrics:
    request_rate: float = 0.0
    error_rate_percent: float = 0.0
    avg_latency_ms: float = 0.0
    bytes_per_second: float = 0.0


@dataclass(frozen=True)
class ConnectionSecurity:
    encrypted: bool = False
    mtls: bool = False  # implies encrypted
    auth_policy: str | None = None


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 0
    timeout_ms: int = 0
    backoff_strategy: str = ""  # opaque label, e.g. "exponential"


@dataclass(frozen=True)
class ServiceConnection:
    """A directed edge from ``source_id`` to ``target_id``."""

    id: str
    source_id: str
    target_id: str
    protocol: Protocol = Protocol.HTTP
    metrics: ConnectionMetrics = field(default_factory=ConnectionMetrics)
    security: ConnectionSecurity = field(default_factory=ConnectionSecurity)
    retry_policy: RetryPolicy | None = None
    load_balancing: LoadBalancing = LoadBalancing.ROUND_ROBIN


@dataclass(frozen=True)
class MeshSnapshot:
    """Services and connections observed at one instant.

    Produced by the telemetry feed once per refresh cycle. Immutable: the
    analysis engine borrows it read-only, so one snapshot can be shared by
    concurrent analysis passes. Cycles and parallel edges are legal.
    """

    nodes: tuple[ServiceNode, ...] = ()
    connections: tuple[ServiceConnection, ...] = ()
    timestamp: str = ""  # ISO-8601 UTC

    def __post_init__(self) -> None:
        # Accept any iterable but always store tuples.
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "connections", tuple(self.connections))


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathSearchResult:
    """Result of a path enumeration query."""

    paths: list[list[str]] = field(default_factory=list)
    truncated: bool = False  # True if max_paths or max_path_length cut the search short
    depth_reached: int = 0  # longest path explored, in edges

    def to_dict(self) -> dict[str, object]:
        return {
            "paths": [list(p) for p in self.paths],
            "truncated": self.truncated,
            "depthReached": self.depth_reached,
        }


@dataclass(frozen=True)
class ServiceImportance:
    service_id: str
    score: float

    def to_dict(self) -> dict[str, object]:
        return {"serviceId": self.service_id, "score": self.score}


@dataclass(frozen=True)
class MeshHealthSummary:
    """Whole-graph status, circuit-breaker, security and traffic aggregates."""

    total_services: int = 0
    healthy_services: int = 0
    warning_services: int = 0
    error_services: int = 0
    unknown_services: int = 0
    open_circuit_breakers: int = 0
    total_connections: int = 0
    encrypted_connections: int = 0
    mtls_connections: int = 0
    avg_latency_ms: float = 0.0  # mean p95 across services
    avg_error_rate_percent: float = 0.0
    total_request_rate: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "totalServices": self.total_services,
            "healthyServices": self.healthy_services,
            "warningServices": self.warning_services,
            "errorServices": self.error_services,
            "unknownServices": self.unknown_services,
            "openCircuitBreakers": self.open_circuit_breakers,
            "totalConnections": self.total_connections,
            "encryptedConnections": self.encrypted_connections,
            "mTLSConnections": self.mtls_connections,
            "avgLatency": self.avg_latency_ms,
            "avgErrorRate": self.avg_error_rate_percent,
            "totalRequestRate": self.total_request_rate,
        }


@dataclass(frozen=True)
class TrafficFlowMetrics:
    """Aggregates over connections alone."""

    total_traffic: float = 0.0
    avg_latency_ms: float = 0.0
    avg_error_rate_percent: float = 0.0
    encrypted_percentage: float = 0.0
    mtls_percentage: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "totalTraffic": self.total_traffic,
            "avgLatency": self.avg_latency_ms,
            "avgErrorRate": self.avg_error_rate_percent,
            "encryptedPercentage": self.encrypted_percentage,
            "mTLSPercentage": self.mtls_percentage,
        }


@dataclass(frozen=True)
class MeshAlerts:
    open_circuit_breakers: list[str] = field(default_factory=list)
    high_error_rate: list[str] = field(default_factory=list)
    high_latency: list[str] = field(default_factory=list)
    security_issues: list[str] = field(default_factory=list)  # connection ids

    def to_dict(self) -> dict[str, object]:
        return {
            "circuitBreakersOpen": list(self.open_circuit_breakers),
            "highErrorRate": list(self.high_error_rate),
            "highLatency": list(self.high_latency),
            "securityIssues": list(self.security_issues),
        }


@dataclass(frozen=True)
class MeshOverview:
    """Dashboard overview: coverage, top services and alert lists."""

    mtls_coverage_percent: float = 0.0
    top_by_request_rate: list[str] = field(default_factory=list)
    top_by_error_rate: list[str] = field(default_factory=list)
    alerts: MeshAlerts = field(default_factory=MeshAlerts)

    def to_dict(self) -> dict[str, object]:
        return {
            "mTLSCoverage": self.mtls_coverage_percent,
            "topServices": {
                "byRequestRate": list(self.top_by_request_rate),
                "byErrorRate": list(self.top_by_error_rate),
            },
            "alerts": self.alerts.to_dict(),
        }


@dataclass(frozen=True)
class MeshAnalysis:
    """Every derived view of one snapshot, computed in a single pass."""

    health: MeshHealthSummary
    traffic: TrafficFlowMetrics
    overview: MeshOverview
    critical_path: list[str] = field(default_factory=list)
    single_points_of_failure: list[str] = field(default_factory=list)
    bottlenecks: list[str] = field(default_factory=list)
    importance: list[ServiceImportance] = field(default_factory=list)
    timestamp: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "health": self.health.to_dict(),
            "traffic": self.traffic.to_dict(),
            "overview": self.overview.to_dict(),
            "criticalPath": list(self.critical_path),
            "singlePointsOfFailure": list(self.single_points_of_failure),
            "bottlenecks": list(self.bottlenecks),
            "importance": [item.to_dict() for item in self.importance],
        }
