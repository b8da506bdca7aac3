"""FastAPI application factory for kubesd.

Usage::

    from kubesd.api.app import create_app

    app = create_app(reconcilers={"default": reconciler}, metrics=metrics)

The factory is shared by the production bootstrap (``kubesd.app``) and tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from kubesd.api.routes import health, router
from kubesd.api.schemas import ErrorResponse
from kubesd.observability.metrics import DiscoveryMetrics

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    reconcilers: dict[str, Any],
    metrics: DiscoveryMetrics,
    config: Any = None,
) -> FastAPI:
    """Create and configure the kubesd FastAPI application.

    Args:
        reconcilers: Section name -> TargetReconciler.
        metrics:     Process-wide DiscoveryMetrics, served on ``/metrics``.
        config:      Optional KubeSDConfig, kept on ``app.state`` for handlers.
    """
    from kubesd import __version__

    app = FastAPI(
        title="kubesd",
        summary="Kubernetes pod scrape-target discovery",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url=None,
        openapi_url="/api/v1/openapi.json",
    )

    app.state.reconcilers = reconcilers
    app.state.metrics = metrics
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/health", include_in_schema=False)
    async def root_health(request: Request) -> Any:
        return await health(request)

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics() -> Response:
        return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)

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
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
