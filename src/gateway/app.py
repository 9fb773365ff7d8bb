"""FastAPI application factory.

- API:      /api/v1/*  (bearer JWT, sub = product user id)
- healthz:  exempt from auth
- metrics:  exempt from auth (prometheus_client exposition)

Every error body is {"error": <code>, "message": <text>}; the code is the
stable machine-readable HubGuardError code, mapped to a status below.
Each request runs inside a request-id context (X-Request-ID in and out).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from src.gateway.api.delegations import create_delegation_router
from src.gateway.api.moderation import create_moderation_router
from src.gateway.api.provisioning import create_provisioning_router
from src.gateway.api.roles import create_roles_router
from src.gateway.api.voice import create_voice_router
from src.gateway.middleware.auth import JWTAuthMiddleware
from src.shared.errors import AuthenticationError, HubGuardError
from src.shared.logging.error_handler import log_structured_error
from src.shared.request_context import request_context

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from prometheus_client import CollectorRegistry

    from src.authz.wiring import AuthzServices

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_EXEMPT_PATHS = frozenset(
    {
        "/healthz",
        "/metrics",
        "/docs",
        "/openapi.json",
        "/redoc",
    }
)

_STATUS_BY_CODE: dict[str, int] = {
    "auth_failed": 401,
    "forbidden_scope": 403,
    "not_found": 404,
    "role_escalation_denied": 409,
    "idempotency_conflict": 409,
    "validation": 422,
    "adapter_failure": 502,
    "service_unavailable": 503,
}


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message})


def create_app(
    *,
    jwt_secret: str | None = None,
    cors_origins: list[str] | None = None,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]] | None = None,
    metrics_registry: CollectorRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        jwt_secret: JWT signing secret. Falls back to JWT_SECRET_KEY env var.
        cors_origins: Allowed CORS origins. Falls back to CORS_ORIGINS env var.
        lifespan: Async context manager factory for startup/shutdown lifecycle.
        metrics_registry: Registry exposed at /metrics (default: global).

    Returns:
        Configured FastAPI application without domain routers; the
        composition root mounts those.
    """
    secret = jwt_secret or os.environ.get("JWT_SECRET_KEY", "")
    if not secret:
        msg = "JWT_SECRET_KEY must be provided via argument or environment variable"
        raise ValueError(msg)

    origins = cors_origins or [
        o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
    ]
    registry = metrics_registry or REGISTRY

    app = FastAPI(
        title="hubguard API",
        description="Scoped authorization and privileged-action gateway",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.jwt_secret = secret
    app.state.jwt_middleware = JWTAuthMiddleware(
        secret=secret,
        exempt_paths=list(_EXEMPT_PATHS),
    )
    auth = app.state.jwt_middleware

    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
            allow_headers=["Authorization", "Content-Type", "Idempotency-Key", REQUEST_ID_HEADER],
        )

    # -- Error handlers --

    @app.exception_handler(HubGuardError)
    async def _hubguard_error(_: Request, exc: HubGuardError) -> JSONResponse:
        status_code = _STATUS_BY_CODE.get(exc.code, 500)
        if status_code >= 500:
            log_structured_error(logger, exc, level=logging.WARNING)
        return _error(status_code, exc.code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return _error(422, "validation", details or "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        code_map = {
            404: "not_found",
            405: "method_not_allowed",
        }
        return _error(
            exc.status_code,
            code_map.get(exc.status_code, "http_error"),
            exc.detail or f"HTTP {exc.status_code}",
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        log_structured_error(
            logger,
            exc,
            error_code="internal_error",
            actor_user_id=getattr(request.state, "user_id", ""),
            context={"path": request.url.path, "method": request.method},
        )
        return _error(500, "internal_error", "Internal server error")

    # -- Request id + auth middleware (ASGI) --

    @app.middleware("http")
    async def request_auth_middleware(request: Request, call_next: Any) -> Response:
        with request_context(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            response = await _authenticate_and_call(request, call_next)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

    async def _authenticate_and_call(request: Request, call_next: Any) -> Response:
        path = request.url.path

        # CORS preflight (OPTIONS) must pass through to CORSMiddleware
        if request.method == "OPTIONS" or auth.is_exempt(path):
            return await call_next(request)

        # Unknown paths return 404, not 401.
        route_matched = any(route.matches(request.scope)[0] != Match.NONE for route in app.routes)
        if not route_matched:
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        token = auth_header[7:] if auth_header.startswith("Bearer ") else None
        try:
            payload = auth.authenticate(token=token, path=path)
        except AuthenticationError as exc:
            return _error(401, exc.code, str(exc))

        if payload is not None:
            request.state.user_id = payload.user_id
        return await call_next(request)

    # -- Exempt routes --

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(
            content=generate_latest(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


def include_authz_routers(app: FastAPI, services: AuthzServices) -> None:
    """Mount the /api/v1 domain routers over a wired set of authz services."""
    app.include_router(create_provisioning_router(provisioning=services.provisioning))
    app.include_router(create_roles_router(grants=services.grants, policy=services.policy))
    app.include_router(create_delegation_router(delegations=services.delegations))
    app.include_router(
        create_moderation_router(moderation=services.moderation, reports=services.reports)
    )
    app.include_router(create_voice_router(voice=services.voice))
