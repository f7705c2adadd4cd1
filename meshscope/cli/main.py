"""Click commands for running analyses from the shell and serving the API."""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from pathlib import Path
from typing import NoReturn

import click

from meshscope.analysis import analyze_snapshot
from meshscope.config import load_config
from meshscope.errors import ConfigurationError, SnapshotFormatError, SnapshotValidationError
from meshscope.graph.codec import load_snapshot
from meshscope.graph.models import MeshSnapshot
from meshscope.graph.paths import search_paths
from meshscope.models.config import MeshScopeConfig
from meshscope.observability.logging import setup_logging

_INTEGRITY_EXIT_CODE = 2


def _echo_json(payload: object, pretty: bool) -> None:
    click.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=False))


def _load(path: Path) -> MeshSnapshot:
    try:
        return load_snapshot(path)
    except SnapshotFormatError as exc:
        raise click.ClickException(str(exc)) from exc


def _exit_integrity_error(exc: SnapshotValidationError) -> NoReturn:
    click.echo(
        json.dumps(
            {
                "error": "SNAPSHOT_INTEGRITY",
                "dangling_edges": exc.dangling_edges,
                "duplicate_node_ids": exc.duplicate_node_ids,
            }
        ),
        err=True,
    )
    raise SystemExit(_INTEGRITY_EXIT_CODE)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Override MESHSCOPE_LOG_LEVEL.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """meshscope: service-mesh dependency and resilience analysis."""
    try:
        config = load_config()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    if log_level is not None:
        config.log.level = log_level
    ctx.obj = config


@cli.command("analyze")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--pretty/--compact", default=True, help="Indent the JSON output.")
@click.pass_obj
def analyze_cmd(config: MeshScopeConfig, snapshot: Path, pretty: bool) -> None:
    """Run every analyzer over SNAPSHOT and print the result as JSON."""
    setup_logging(config.log.level, json_output=False)
    mesh = _load(snapshot)
    try:
        result = analyze_snapshot(mesh, config.analysis)
    except SnapshotValidationError as exc:
        _exit_integrity_error(exc)
    _echo_json(result.to_dict(), pretty)


@cli.command("paths")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("source")
@click.argument("target")
@click.option("--max-paths", type=click.IntRange(min=1), default=None, help="Stop after this many paths.")
@click.option("--max-length", type=click.IntRange(min=1), default=None, help="Longest path, in edges.")
@click.option("--pretty/--compact", default=True)
@click.pass_obj
def paths_cmd(
    config: MeshScopeConfig,
    snapshot: Path,
    source: str,
    target: str,
    max_paths: int | None,
    max_length: int | None,
    pretty: bool,
) -> None:
    """Enumerate simple paths from SOURCE to TARGET."""
    setup_logging(config.log.level, json_output=False)
    analysis_config = config.analysis
    if max_paths is not None:
        analysis_config = replace(analysis_config, max_paths=max_paths)
    if max_length is not None:
        analysis_config = replace(analysis_config, max_path_length=max_length)

    mesh = _load(snapshot)
    try:
        result = search_paths(mesh, source, target, analysis_config)
    except SnapshotValidationError as exc:
        _exit_integrity_error(exc)
    _echo_json(result.to_dict(), pretty)


@cli.command("serve")
@click.option("--host", default=None, help="Override MESHSCOPE_API_HOST.")
@click.option("--port", type=click.IntRange(min=1024, max=65535), default=None, help="Override MESHSCOPE_API_PORT.")
@click.pass_obj
def serve_cmd(config: MeshScopeConfig, host: str | None, port: int | None) -> None:
    """Serve the REST API until SIGINT/SIGTERM."""
    from meshscope.app import main

    if host is not None:
        config.api.host = host
    if port is not None:
        config.api.port = port
    asyncio.run(main(config))
