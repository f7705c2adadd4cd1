"""Snapshot document decoding and encoding.

Decoding validates the document against ``meshscope.graph.documents`` and
reports the first offending field as a ``SnapshotFormatError`` with a dotted
path such as ``services[0].metrics.errorRate``. Encoding writes the same
camelCase layout back out.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from meshscope.errors import SnapshotFormatError
from meshscope.graph.documents import SnapshotDocument
from meshscope.graph.models import MeshSnapshot, ServiceConnection, ServiceNode

# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def error_location(loc: Sequence[int | str]) -> str:
    """Render a pydantic error location as ``services[0].metrics.errorRate``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = part
    return path or "snapshot"


def format_error(exc: ValidationError) -> SnapshotFormatError:
    first = exc.errors()[0]
    return SnapshotFormatError(error_location(first["loc"]), first["msg"])


def snapshot_from_dict(doc: Any) -> MeshSnapshot:
    """Decode a snapshot document.

    Only the document's shape and value domains are checked here; graph
    integrity (dangling edges, duplicate ids) is the job of
    ``meshscope.graph.validation``.

    Raises:
        SnapshotFormatError: on the first malformed field.
    """
    try:
        document = SnapshotDocument.model_validate(doc)
    except ValidationError as exc:
        raise format_error(exc) from exc
    return document.to_snapshot()


def load_snapshot(path: str | Path) -> MeshSnapshot:
    """Read and decode a snapshot document from a JSON file."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotFormatError(str(path), f"cannot read file: {exc.strerror or exc}") from exc
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(str(path), f"invalid JSON: {exc.msg} (line {exc.lineno})") from exc
    return snapshot_from_dict(doc)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def service_to_dict(node: ServiceNode) -> dict[str, object]:
    breaker: dict[str, object] = {
        "status": node.circuit_breaker.status.value,
        "failureThreshold": node.circuit_breaker.failure_threshold,
        "timeout": node.circuit_breaker.timeout_ms,
    }
    if node.circuit_breaker.last_tripped_at is not None:
        breaker["lastTripped"] = node.circuit_breaker.last_tripped_at
    return {
        "id": node.id,
        "name": node.name,
        "namespace": node.namespace,
        "version": node.version,
        "type": node.kind.value,
        "status": node.status.value,
        "instances": node.instance_count,
        "metrics": {
            "requestRate": node.metrics.request_rate,
            "errorRate": node.metrics.error_rate_percent,
            "latency": {
                "p50": node.metrics.latency.p50,
                "p95": node.metrics.latency.p95,
                "p99": node.metrics.latency.p99,
            },
            "successRate": node.metrics.success_rate_percent,
        },
        "circuitBreaker": breaker,
    }


def connection_to_dict(conn: ServiceConnection) -> dict[str, object]:
    security: dict[str, object] = {
        "encrypted": conn.security.encrypted,
        "mTLS": conn.security.mtls,
    }
    if conn.security.auth_policy is not None:
        security["authPolicy"] = conn.security.auth_policy
    doc: dict[str, object] = {
        "id": conn.id,
        "source": conn.source_id,
        "target": conn.target_id,
        "protocol": conn.protocol.value,
        "metrics": {
            "requestRate": conn.metrics.request_rate,
            "errorRate": conn.metrics.error_rate_percent,
            "latency": conn.metrics.avg_latency_ms,
            "bytesTransferred": conn.metrics.bytes_per_second,
        },
        "security": security,
        "loadBalancing": conn.load_balancing.value,
    }
    if conn.retry_policy is not None:
        doc["retryPolicy"] = {
            "attempts": conn.retry_policy.attempts,
            "timeout": conn.retry_policy.timeout_ms,
            "backoff": conn.retry_policy.backoff_strategy,
        }
    return doc


def snapshot_to_dict(snapshot: MeshSnapshot) -> dict[str, object]:
    return {
        "timestamp": snapshot.timestamp,
        "services": [service_to_dict(node) for node in snapshot.nodes],
        "connections": [connection_to_dict(conn) for conn in snapshot.connections],
    }
