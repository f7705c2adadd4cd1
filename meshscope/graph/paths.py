"""Cycle-safe enumeration of simple directed paths.

The search is depth-first over outgoing connections in snapshot order. Each
branch carries its own visited set, forked from its parent's, so sibling
branches may reuse nodes the other branch already walked through while no
single path ever repeats a node. That is what guarantees termination on
cyclic graphs. The number of simple paths can still grow exponentially on
dense graphs, so the search honours the ``max_paths`` and
``max_path_length`` ceilings from ``AnalysisConfig``.

An explicit stack replaces recursion so long dependency chains do not run
into the interpreter's recursion limit; children are pushed in reverse so
paths come out in exactly the order a recursive walk would produce them.

A result is only marked truncated when a ceiling actually hid a path: once
a ceiling bites, the cut branches are checked for a route to the end node
that avoids their own visited set.
"""

from __future__ import annotations

from meshscope.graph.models import MeshSnapshot, PathSearchResult
from meshscope.graph.validation import MeshIndex
from meshscope.models.config import DEFAULT_ANALYSIS_CONFIG, AnalysisConfig
from meshscope.observability.logging import get_logger
from meshscope.observability.metrics import path_enumerations_truncated_total

_logger = get_logger("graph.paths")

# (frontier node, path so far, nodes visited on this branch)
_Frame = tuple[str, tuple[str, ...], frozenset[str]]


def _ancestors(index: MeshIndex, end_id: str) -> set[str]:
    """Every node with some directed route to *end_id*, ignoring simplicity."""
    seen = {end_id}
    frontier = [end_id]
    while frontier:
        for conn in index.incoming[frontier.pop()]:
            if conn.source_id not in seen:
                seen.add(conn.source_id)
                frontier.append(conn.source_id)
    return seen


def _extends_to(index: MeshIndex, node_id: str, end_id: str, visited: frozenset[str]) -> bool:
    """True if a simple path continues from *node_id* to *end_id* outside *visited*."""
    if node_id == end_id:
        return True
    seen = {node_id}
    frontier = [node_id]
    while frontier:
        for conn in index.outgoing[frontier.pop()]:
            target = conn.target_id
            if target == end_id:
                return True
            if target not in seen and target not in visited:
                seen.add(target)
                frontier.append(target)
    return False


def enumerate_paths(
    index: MeshIndex,
    start_id: str,
    end_id: str,
    config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG,
) -> PathSearchResult:
    """Enumerate simple paths over an already validated index."""
    if start_id not in index.nodes_by_id or end_id not in index.nodes_by_id:
        return PathSearchResult()
    if start_id == end_id:
        return PathSearchResult(paths=[[start_id]])

    max_paths = config.max_paths
    max_length = config.max_path_length

    # Built on first use; searches that never hit a ceiling skip it.
    ancestors: set[str] | None = None

    def hides_a_path(frame: _Frame) -> bool:
        nonlocal ancestors
        if ancestors is None:
            ancestors = _ancestors(index, end_id)
        node_id, _, visited = frame
        return node_id in ancestors and _extends_to(index, node_id, end_id, visited)

    paths: list[list[str]] = []
    truncated = False
    depth_reached = 0
    stack: list[_Frame] = [(start_id, (start_id,), frozenset((start_id,)))]

    while stack:
        node_id, path, visited = stack.pop()
        edges = len(path) - 1
        depth_reached = max(depth_reached, edges)

        if node_id == end_id:
            paths.append(list(path))
            if max_paths is not None and len(paths) >= max_paths:
                truncated = any(hides_a_path(frame) for frame in stack)
                break
            continue

        targets = [conn.target_id for conn in index.outgoing[node_id] if conn.target_id not in visited]
        if not targets:
            continue
        if max_length is not None and edges >= max_length:
            truncated = truncated or hides_a_path((node_id, path, visited))
            continue
        for target in reversed(targets):
            stack.append((target, path + (target,), visited | {target}))

    if truncated:
        path_enumerations_truncated_total.inc()
        _logger.warning(
            "path_enumeration_truncated",
            start=start_id,
            end=end_id,
            paths_found=len(paths),
            max_paths=max_paths,
            max_path_length=max_length,
        )

    return PathSearchResult(paths=paths, truncated=truncated, depth_reached=depth_reached)


def search_paths(
    snapshot: MeshSnapshot,
    start_id: str,
    end_id: str,
    config: AnalysisConfig | None = None,
) -> PathSearchResult:
    """Enumerate every simple path from *start_id* to *end_id*.

    Raises:
        SnapshotValidationError: the snapshot has dangling edges or duplicate ids.
    """
    index = MeshIndex.build(snapshot)
    return enumerate_paths(index, start_id, end_id, config or DEFAULT_ANALYSIS_CONFIG)


def find_all_paths(
    snapshot: MeshSnapshot,
    start_id: str,
    end_id: str,
    config: AnalysisConfig | None = None,
) -> list[list[str]]:
    """Return the simple paths from *start_id* to *end_id* as lists of node ids.

    ``start_id == end_id`` yields the single-node path. Parallel edges yield
    one path each, so the same node sequence can appear more than once.
    Unknown ids yield no paths.
    """
    return search_paths(snapshot, start_id, end_id, config).paths
