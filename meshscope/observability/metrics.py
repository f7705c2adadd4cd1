"""Prometheus metrics for the analysis engine."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

analysis_runs_total = Counter(
    "meshscope_analysis_runs_total",
    "Full mesh analysis passes, by outcome.",
    ["outcome"],
)

analysis_duration_seconds = Histogram(
    "meshscope_analysis_duration_seconds",
    "Wall-clock time of a full mesh analysis pass.",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

path_enumerations_truncated_total = Counter(
    "meshscope_path_enumerations_truncated_total",
    "Path enumerations stopped early by the max_paths or max_path_length ceiling.",
)
