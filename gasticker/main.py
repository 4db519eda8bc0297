"""FastAPI application exposing the gas ticker registry."""
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import __version__
from .metrics import track_registry
from .schemas import GasRequest
from .services.logging import RequestContext, request_log_store
from .services.registry import (
    GasConflictError,
    GasNotFoundError,
    GasRegistry,
    GasValidationError,
    build_registry,
)

logger = logging.getLogger(__name__)


def _request_context(request: Request) -> RequestContext:
    return RequestContext(request_id=request.headers.get("x-correlation-id") or uuid.uuid4().hex)


def get_registry(request: Request) -> GasRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Registry not ready")
    return registry


def create_app(registry: GasRegistry | None = None) -> FastAPI:
    """Build the API around ``registry``; one is built from settings at startup when omitted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.registry is None:
            app.state.registry = build_registry()
            track_registry(app.state.registry)
        try:
            yield
        finally:
            app.state.registry.close()

    app = FastAPI(title="Gas Ticker", version=__version__, lifespan=lifespan)
    app.state.registry = registry
    if registry is not None:
        track_registry(registry)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        context = _request_context(request)
        context.warning(
            logger,
            "request body could not be decoded",
            event="request.decode_error",
            path=str(request.url.path),
            errors=str(exc.errors()),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request body", "request_id": context.request_id},
        )

    @app.post("/gas")
    def add_gas(body: GasRequest, request: Request, registry: GasRegistry = Depends(get_registry)) -> dict:
        context = _request_context(request).with_network(body.network)
        context.debug(logger, "got an API request to add a gas", event="gas.add_requested")
        try:
            entry = registry.add(body)
        except GasValidationError as exc:
            context.warning(logger, "gas request rejected", event="gas.invalid", error=str(exc))
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except GasConflictError as exc:
            context.warning(logger, "network already watched", event="gas.conflict")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except Exception as exc:
            context.exception(logger, "gas add failed", event="gas.add_failed", error=str(exc))
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add gas") from exc

        context.info(
            logger,
            "gas added",
            event="gas.added",
            frequency=entry.frequency,
            set_nickname=entry.nickname,
        )
        return entry.sanitized_dict()

    @app.delete("/gas/{network}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_gas(network: str, request: Request, registry: GasRegistry = Depends(get_registry)) -> Response:
        context = _request_context(request).with_network(network)
        context.debug(logger, "got an API request to delete a gas", event="gas.delete_requested")
        try:
            registry.delete(network)
        except GasNotFoundError as exc:
            context.warning(logger, "no gas found", event="gas.not_found")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        context.info(logger, "gas deleted", event="gas.deleted")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/gas")
    def list_gas(registry: GasRegistry = Depends(get_registry)) -> dict:
        return registry.list()

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/api/requests/{request_id}/logs")
    def get_request_logs(request_id: str) -> dict:
        """Developer-facing helper to inspect the recorded milestones."""

        return {"request_id": request_id, "logs": request_log_store.get(request_id)}

    return app


# Convenience for uvicorn: `uvicorn gasticker.main:app`
app = create_app()
