"""Service list views: filtering, search, sorting and kind inference.

None of these functions reorder or modify the sequence they are given;
they always return new lists.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Literal

from meshscope.graph.models import CircuitBreakerStatus, ServiceKind, ServiceNode, ServiceStatus

SERVICE_TYPE_LABEL = "infra/service-type"

# Checked in order; the first pattern contained in the service name wins.
# Infrastructure roles come first so "api-gateway" is a gateway, not a backend.
_NAME_PATTERNS: tuple[tuple[str, ServiceKind], ...] = (
    ("gateway", ServiceKind.GATEWAY),
    ("proxy", ServiceKind.GATEWAY),
    ("ingress", ServiceKind.GATEWAY),
    ("sidecar", ServiceKind.SIDECAR),
    ("mesh", ServiceKind.SIDECAR),
    ("database", ServiceKind.DATABASE),
    ("postgres", ServiceKind.DATABASE),
    ("mysql", ServiceKind.DATABASE),
    ("mongodb", ServiceKind.DATABASE),
    ("db", ServiceKind.DATABASE),
    ("cache", ServiceKind.CACHE),
    ("redis", ServiceKind.CACHE),
    ("memcached", ServiceKind.CACHE),
    ("frontend", ServiceKind.FRONTEND),
    ("ui", ServiceKind.FRONTEND),
    ("web", ServiceKind.FRONTEND),
    ("backend", ServiceKind.BACKEND),
    ("api", ServiceKind.BACKEND),
    ("server", ServiceKind.BACKEND),
)


def infer_service_kind(name: str, labels: Mapping[str, str] | None = None) -> ServiceKind:
    """Classify a Kubernetes service by its ``infra/service-type`` label or its name.

    Names that match no known pattern default to backend.
    """
    if labels and SERVICE_TYPE_LABEL in labels:
        try:
            return ServiceKind(labels[SERVICE_TYPE_LABEL].lower())
        except ValueError:
            return ServiceKind.OTHER

    lowered = name.lower()
    for pattern, kind in _NAME_PATTERNS:
        if pattern in lowered:
            return kind
    return ServiceKind.BACKEND


# ---------------------------------------------------------------------------
# Filtering and search
# ---------------------------------------------------------------------------


def _matches(node: ServiceNode, query: str, with_status: bool = False) -> bool:
    fields = [node.name, node.namespace, node.kind.value]
    if with_status:
        fields += [node.status.value, node.version]
    return any(query in value.lower() for value in fields)


def filter_services(
    nodes: Iterable[ServiceNode],
    kind: ServiceKind | Literal["all"] = "all",
    query: str | None = None,
) -> list[ServiceNode]:
    """Keep services of *kind* whose name, namespace or kind contains *query*."""
    result = [n for n in nodes if kind == "all" or n.kind == kind]
    if query:
        lowered = query.lower()
        result = [n for n in result if _matches(n, lowered)]
    return result


def search_services(nodes: Iterable[ServiceNode], query: str) -> list[ServiceNode]:
    """Case-insensitive search over name, namespace, kind, status and version."""
    if not query:
        return list(nodes)
    lowered = query.lower()
    return [n for n in nodes if _matches(n, lowered, with_status=True)]


HealthFilter = Literal["all", "healthy", "warning", "error"]


def filter_services_by_health(nodes: Iterable[ServiceNode], health: HealthFilter) -> list[ServiceNode]:
    """Bucket services by combining reported status with observed error rate."""

    def keep(node: ServiceNode) -> bool:
        error_rate = node.metrics.error_rate_percent
        if health == "healthy":
            return node.status == ServiceStatus.HEALTHY and error_rate <= 2
        if health == "warning":
            return node.status == ServiceStatus.WARNING or 2 < error_rate <= 5
        if health == "error":
            return (
                node.status == ServiceStatus.ERROR
                or error_rate > 5
                or node.circuit_breaker.status == CircuitBreakerStatus.OPEN
            )
        return True

    return [n for n in nodes if keep(n)]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

_SORT_KEYS: dict[str, Callable[[ServiceNode], str | float]] = {
    "name": lambda n: n.name,
    "kind": lambda n: n.kind.value,
    "type": lambda n: n.kind.value,
    "namespace": lambda n: n.namespace,
    "status": lambda n: n.status.value,
    "rps": lambda n: n.metrics.request_rate,
    "requestRate": lambda n: n.metrics.request_rate,
    "errorRate": lambda n: n.metrics.error_rate_percent,
    "latency": lambda n: n.metrics.latency.p95,
    "p95": lambda n: n.metrics.latency.p95,
    "circuitBreaker": lambda n: n.circuit_breaker.status.value,
}


def sort_services(
    nodes: Iterable[ServiceNode],
    sort_by: str,
    order: Literal["asc", "desc"] = "asc",
) -> list[ServiceNode]:
    """Return *nodes* sorted by *sort_by*; unknown keys sort by name.

    Text keys compare case-insensitively. The sort is stable in both
    directions.
    """
    key = _SORT_KEYS.get(sort_by, _SORT_KEYS["name"])

    def sort_key(node: ServiceNode) -> str | float:
        value = key(node)
        return value.casefold() if isinstance(value, str) else value

    return sorted(nodes, key=sort_key, reverse=(order == "desc"))


def unique_namespaces(nodes: Sequence[ServiceNode]) -> list[str]:
    return sorted({n.namespace for n in nodes})


def unique_kinds(nodes: Sequence[ServiceNode]) -> list[str]:
    return sorted({n.kind.value for n in nodes})
