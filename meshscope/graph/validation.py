"""Referential-integrity validation and the read-only adjacency index.

Every analyzer obtains its ``MeshIndex`` through ``MeshIndex.build``, which
validates the snapshot first. A snapshot with a dangling edge or a duplicate
node id therefore fails before any traversal starts and no analyzer ever
returns a partial result for it.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from meshscope.errors import SnapshotValidationError
from meshscope.graph.models import MeshSnapshot, ServiceConnection, ServiceKind, ServiceNode


@dataclass(frozen=True)
class IntegrityReport:
    """Outcome of the integrity checks. Ids appear once, in snapshot order."""

    dangling_edges: list[str] = field(default_factory=list)
    duplicate_node_ids: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.dangling_edges and not self.duplicate_node_ids


def find_integrity_violations(snapshot: MeshSnapshot) -> IntegrityReport:
    """Check node-id uniqueness and that every edge endpoint resolves."""
    seen: set[str] = set()
    # dicts as ordered sets: first-occurrence order, constant-time membership
    duplicates: dict[str, None] = {}
    for node in snapshot.nodes:
        if node.id in seen:
            duplicates[node.id] = None
        seen.add(node.id)

    dangling: dict[str, None] = {}
    for conn in snapshot.connections:
        if conn.source_id not in seen or conn.target_id not in seen:
            dangling[conn.id] = None

    return IntegrityReport(dangling_edges=list(dangling), duplicate_node_ids=list(duplicates))


def validate(snapshot: MeshSnapshot) -> None:
    """Raise SnapshotValidationError if *snapshot* violates referential integrity."""
    report = find_integrity_violations(snapshot)
    if not report.ok:
        raise SnapshotValidationError(
            dangling_edges=report.dangling_edges,
            duplicate_node_ids=report.duplicate_node_ids,
        )


@dataclass(frozen=True)
class MeshIndex:
    """Lookup tables over a validated snapshot.

    Outgoing and incoming connection lists keep snapshot order, which is what
    makes every traversal deterministic for identical input.
    """

    snapshot: MeshSnapshot
    nodes_by_id: Mapping[str, ServiceNode]
    outgoing: Mapping[str, tuple[ServiceConnection, ...]]
    incoming: Mapping[str, tuple[ServiceConnection, ...]]
    kind_counts: Mapping[ServiceKind, int]

    @classmethod
    def build(cls, snapshot: MeshSnapshot) -> MeshIndex:
        validate(snapshot)

        outgoing: dict[str, list[ServiceConnection]] = {node.id: [] for node in snapshot.nodes}
        incoming: dict[str, list[ServiceConnection]] = {node.id: [] for node in snapshot.nodes}
        for conn in snapshot.connections:
            outgoing[conn.source_id].append(conn)
            incoming[conn.target_id].append(conn)

        return cls(
            snapshot=snapshot,
            nodes_by_id=MappingProxyType({node.id: node for node in snapshot.nodes}),
            outgoing=MappingProxyType({k: tuple(v) for k, v in outgoing.items()}),
            incoming=MappingProxyType({k: tuple(v) for k, v in incoming.items()}),
            kind_counts=MappingProxyType(dict(Counter(node.kind for node in snapshot.nodes))),
        )

    def in_degree(self, node_id: str) -> int:
        return len(self.incoming.get(node_id, ()))

    def out_degree(self, node_id: str) -> int:
        return len(self.outgoing.get(node_id, ()))

    def degree(self, node_id: str) -> int:
        return self.in_degree(node_id) + self.out_degree(node_id)

    def nodes_of_kind(self, kind: ServiceKind) -> list[ServiceNode]:
        return [node for node in self.snapshot.nodes if node.kind == kind]
