"""FastAPI application factory for meshscope.

Usage::

    from meshscope.api.app import create_app

    app = create_app(analysis_config=config.analysis)

The factory is used by both the production bootstrap (``meshscope.app``)
and unit tests.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from meshscope.api.routes import router
from meshscope.api.schemas import ErrorResponse
from meshscope.errors import SnapshotValidationError
from meshscope.graph.codec import error_location
from meshscope.models.config import DEFAULT_ANALYSIS_CONFIG, AnalysisConfig

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(analysis_config: AnalysisConfig | None = None) -> FastAPI:
    """Create and configure the meshscope FastAPI application.

    Args:
        analysis_config: Thresholds and weights applied to every request.
                         Defaults to ``DEFAULT_ANALYSIS_CONFIG``.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from meshscope import __version__

    app = FastAPI(
        title="meshscope",
        summary="Service-mesh dependency and resilience analysis API",
        version=__version__,
        description=(
            "meshscope derives critical paths, single points of failure, "
            "bottlenecks, importance rankings and aggregate health from a "
            "service-mesh snapshot."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    # Store dependencies in app.state so route handlers can access them
    # without module-level globals.
    app.state.analysis_config = analysis_config or DEFAULT_ANALYSIS_CONFIG

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map FastAPI body/query validation errors to our error envelope.

        A body that parsed as a JSON object but failed the snapshot document
        model is INVALID_SNAPSHOT, reported with the same dotted field path
        the CLI prints. Anything else (query parameters, a missing or
        non-object body, broken JSON) is INVALID_REQUEST.
        """
        errors = exc.errors()
        if not errors:
            return _error(400, ErrorResponse(error="INVALID_REQUEST", detail=""))
        first = errors[0]
        loc = tuple(first.get("loc", ()))
        msg = str(first.get("msg", ""))
        if len(loc) > 1 and loc[0] == "body" and first.get("type") != "json_invalid":
            return _error(400, ErrorResponse(error="INVALID_SNAPSHOT", detail=f"{error_location(loc[1:])}: {msg}"))
        return _error(400, ErrorResponse(error="INVALID_REQUEST", detail=msg))

    @app.exception_handler(SnapshotValidationError)
    async def snapshot_integrity_handler(
        request: Request,
        exc: SnapshotValidationError,
    ) -> JSONResponse:
        """Report the offending ids so the caller can fix its feed."""
        _log.warning(
            "snapshot_integrity_error",
            path=str(request.url.path),
            dangling_edges=exc.dangling_edges,
            duplicate_node_ids=exc.duplicate_node_ids,
        )
        return _error(
            422,
            ErrorResponse(
                error="SNAPSHOT_INTEGRITY",
                detail=str(exc),
                dangling_edges=exc.dangling_edges,
                duplicate_node_ids=exc.duplicate_node_ids,
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(
            500,
            ErrorResponse(error="INTERNAL_ERROR", detail="An unexpected error occurred."),
        )

    return app
