"""Service-mesh graph model and the analysis engine built on it.

Every function here is a pure, synchronous transform of one
``MeshSnapshot``; nothing is cached between calls.

Submodules:
    models      -- Enumerations and frozen dataclasses for nodes, edges and results.
    codec       -- Snapshot document (JSON) decoding and encoding.
    validation  -- Referential-integrity checks and the read-only adjacency index.
    paths       -- Cycle-safe simple-path enumeration with optional ceilings.
    topology    -- Critical path, SPOFs, bottlenecks, importance, dependency paths.
    health      -- Whole-mesh health summary, traffic-flow metrics, overview report.
    filters     -- Service filtering, search, sorting and kind inference.
"""
