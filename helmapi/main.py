#!/usr/bin/env python3
"""
helmapi - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Builds the release adapter once at startup
3. Maps HTTP routes onto adapter calls

All helm logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from helmapi import __version__
from helmapi.config.provider import ConfigProvider, EnvConfigProvider
from helmapi.logging_config import get_logging_config
from helmapi.modules.api import (
    InstallRequest,
    RepositoryRequest,
    UninstallRequest,
    UpgradeRequest,
    json_body,
    respond,
    respond_with_error,
    run_bound_to_request,
)
from helmapi.modules.api.body import format_validation_error
from helmapi.modules.engine import HelmApiError
from helmapi.modules.middleware import RequestLoggingMiddleware
from helmapi.modules.releases import ReleaseAdapter

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()
api_config = config_provider.get_api_config()

log_config.dictConfig(get_logging_config(api_config.log_level))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the shared, read-only engine settings and the adapter.
    """
    logger.info("Starting helmapi...")

    settings = config_provider.get_engine_settings()
    if not settings.in_cluster and not settings.kubeconfig:
        logger.warning("No kubeconfig path resolved; engine calls will fail until one is configured")

    app.state.settings = settings
    app.state.adapter = ReleaseAdapter(settings)
    logger.info(
        f"helmapi started (in_cluster={settings.in_cluster}, kubeconfig={settings.kubeconfig or '-'}, "
        f"driver={settings.driver or 'default'})"
    )

    yield

    logger.info("helmapi shutdown complete")


app = FastAPI(
    title="helmapi",
    description="REST API for Helm chart and release management",
    version=__version__,
    lifespan=lifespan,
)

app.middleware("http")(RequestLoggingMiddleware())

api = APIRouter(prefix="/api/v1")


def get_adapter(request: Request) -> ReleaseAdapter:
    """Release adapter created at startup."""
    adapter = getattr(request.app.state, "adapter", None)
    if adapter is None:
        raise HTTPException(503, "Service not initialized")
    return adapter


# Health Endpoint


@api.get("/health")
async def health_check():
    """
    Liveness endpoint.

    Returns:
        200: Service is running
    """
    return {"status": "healthy"}


# Chart Endpoints


@api.post("/charts/install")
async def install_chart(
    request: Request,
    body: InstallRequest = Depends(json_body(InstallRequest)),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """
    Install a chart as a new release.

    Returns:
        200: ReleaseDetail
        400: Invalid request or chart not found
        500: Engine failure
    """
    release = await run_bound_to_request(request, adapter.install(body))
    return respond(release)


@api.put("/charts/upgrade")
async def upgrade_chart(
    request: Request,
    body: UpgradeRequest = Depends(json_body(UpgradeRequest)),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """
    Upgrade an existing release.

    Returns:
        200: ReleaseDetail
        400: Invalid request or chart not found
        404: Release not found
        500: Engine failure
    """
    release = await run_bound_to_request(request, adapter.upgrade(body))
    return respond(release)


@api.delete("/charts/uninstall")
async def uninstall_chart(
    request: Request,
    body: UninstallRequest = Depends(json_body(UninstallRequest)),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """
    Uninstall a release.

    Returns:
        200: UninstallResult
        400: Invalid request
        404: Release not found
        500: Engine failure
    """
    result = await run_bound_to_request(request, adapter.uninstall(body))
    return respond(result)


# Release Endpoints


@api.get("/releases")
async def list_releases(
    namespace: Optional[str] = Query(None, description="Namespace to list"),
    all_namespaces: bool = Query(False, alias="allNamespaces"),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """List releases in a namespace, or across all namespaces."""
    releases = await adapter.list_releases(namespace, all_namespaces)
    return respond(releases)


@api.get("/releases/{name}")
async def get_release(
    name: str,
    namespace: Optional[str] = Query(None),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """Get details of a release."""
    return respond(await adapter.get_release(name, namespace))


@api.get("/releases/{name}/history")
async def get_release_history(
    name: str,
    namespace: Optional[str] = Query(None),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """Get the revision history of a release (most recent 256)."""
    return respond(await adapter.get_history(name, namespace))


@api.get("/releases/{name}/status")
async def get_release_status(
    name: str,
    namespace: Optional[str] = Query(None),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """Get the live status of a release."""
    return respond(await adapter.get_status(name, namespace))


# Repository Endpoints


@api.post("/repositories")
async def add_repository(
    body: RepositoryRequest = Depends(json_body(RepositoryRequest)),
    adapter: ReleaseAdapter = Depends(get_adapter),
):
    """
    Register a chart repository and download its index.

    Returns:
        201: Repository added
        400: Invalid request
        500: Repository unreachable or index invalid
    """
    await adapter.add_repository(body.name, body.url)
    return respond(status_code=201, message=f"repository {body.name} added")


app.include_router(api)


# Error handlers


@app.exception_handler(HelmApiError)
async def helm_api_error_handler(request: Request, exc: HelmApiError):
    """Map the error taxonomy onto status codes."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return respond_with_error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle invalid path/query parameters."""
    logger.warning(f"Validation error on {request.url.path}: {exc}")
    return respond_with_error(400, format_validation_error(exc))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework errors (404 route, 405 method, 503) in the envelope."""
    return respond_with_error(exc.status_code, str(exc.detail))


def main():
    """Run the API server."""
    uvicorn.run(
        "helmapi.main:app",
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        reload=api_config.debug,
        log_config=get_logging_config(api_config.log_level),
    )


if __name__ == "__main__":
    main()
