"""Structured logging for meshscope, built on structlog.

The server writes one JSON object per line to stderr. The CLI can ask for
the human-readable console renderer instead so that log lines do not get
mixed into the JSON documents it prints on stdout.

uvicorn logs through the standard library. Its records are routed through
``structlog.stdlib.ProcessorFormatter`` so a bind failure or a worker error
comes out in the same format, with the same ``ts`` and ``level`` keys, as
meshscope's own events.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.typing import Processor

# stdlib loggers whose records are re-rendered by structlog
_FOREIGN_LOGGERS = ("uvicorn",)


def _render_chain(json_output: bool) -> list[Processor]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    # ConsoleRenderer formats exceptions itself
    return [structlog.dev.ConsoleRenderer(colors=False)]


def _route_foreign_loggers(level: int, pre_chain: list[Processor], render_chain: list[Processor]) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *pre_chain],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render_chain],
        )
    )
    for name in _FOREIGN_LOGGERS:
        foreign = logging.getLogger(name)
        foreign.handlers = [handler]
        foreign.setLevel(level)
        foreign.propagate = False


def setup_logging(level: str = "info", json_output: bool = True) -> None:
    """Configure structlog and the stdlib loggers of the libraries we embed.

    Safe to call more than once; each call replaces the previous setup.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    render_chain = _render_chain(json_output)
    shared: list[Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
    ]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            *render_chain,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _route_foreign_loggers(log_level, shared, render_chain)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def bind_snapshot_context(snapshot_timestamp: str, node_count: int, edge_count: int) -> None:
    """Attach the snapshot being analysed to every log line on this context."""
    structlog.contextvars.bind_contextvars(
        snapshot_ts=snapshot_timestamp or None,
        snapshot_nodes=node_count,
        snapshot_edges=edge_count,
    )


def clear_snapshot_context() -> None:
    structlog.contextvars.unbind_contextvars("snapshot_ts", "snapshot_nodes", "snapshot_edges")
