"""Configuration data structures for meshscope."""

from meshscope.models.config import (
    DEFAULT_ANALYSIS_CONFIG,
    AnalysisConfig,
    APIConfig,
    LogConfig,
    MeshScopeConfig,
)

__all__ = [
    "APIConfig",
    "AnalysisConfig",
    "DEFAULT_ANALYSIS_CONFIG",
    "LogConfig",
    "MeshScopeConfig",
]
