"""Observability helpers: structlog logging and Prometheus metrics.

Submodules:
    logging -- structlog configuration and component-bound loggers.
    metrics -- prometheus_client counters and histograms.
"""
