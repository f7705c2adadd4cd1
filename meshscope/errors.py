"""Typed errors raised by the meshscope engine and its outer surfaces."""

from __future__ import annotations


class MeshScopeError(Exception):
    """Base class for every error raised by meshscope."""


class SnapshotValidationError(MeshScopeError):
    """A snapshot failed referential-integrity checks.

    Raised before any traversal begins; no analyzer returns partial results
    for a snapshot that produces this error.
    """

    def __init__(
        self,
        dangling_edges: list[str] | None = None,
        duplicate_node_ids: list[str] | None = None,
    ) -> None:
        self.dangling_edges = list(dangling_edges or [])
        self.duplicate_node_ids = list(duplicate_node_ids or [])
        parts: list[str] = []
        if self.dangling_edges:
            parts.append(f"dangling edges: {', '.join(self.dangling_edges)}")
        if self.duplicate_node_ids:
            parts.append(f"duplicate node ids: {', '.join(self.duplicate_node_ids)}")
        super().__init__("Invalid mesh snapshot (" + "; ".join(parts or ["unknown"]) + ")")


class SnapshotFormatError(MeshScopeError):
    """A snapshot document could not be decoded into the graph model."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}" if path else reason)
        self.path = path
        self.reason = reason


class ConfigurationError(MeshScopeError, ValueError):
    """A threshold, weight or ceiling lies outside its valid domain."""
