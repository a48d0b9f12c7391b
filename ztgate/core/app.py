"""FastAPI application factory for the ztgate identity-aware proxy."""

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response

from ztgate.core.app_logging import setup_logging
from ztgate.core.errors import ConfigError, KeySetUnavailableError
from ztgate.core.settings import GatewaySettings
from ztgate.db.engine import init_models
from ztgate.identity.routes_jwks import router as jwks_router
from ztgate.routing.routes_config import router as config_router
from ztgate.routing.routes_proxy import router as proxy_router

HTTP_INTERNAL_ERROR = 500

logger = logging.getLogger(__name__)


async def _config_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("workload config unavailable", exc_info=exc)
    return JSONResponse(
        {"error": "config_unavailable"}, status_code=HTTP_INTERNAL_ERROR
    )


async def _key_set_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("signing key set unavailable", exc_info=exc)
    return JSONResponse({"error": "server_error"}, status_code=HTTP_INTERNAL_ERROR)


async def _log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={"duration_ms": round((time.perf_counter() - start) * 1000, 1)},
    )
    return response


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = GatewaySettings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await init_models()
        yield

    app = FastAPI(
        title="ztgate identity-aware proxy",
        version="0.1.0",
        lifespan=lifespan,
    )

    origins = settings.get_cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
            allow_headers=["Authorization", "Content-Type"],
        )
    app.middleware("http")(_log_requests)
    app.add_exception_handler(ConfigError, _config_error_handler)
    app.add_exception_handler(KeySetUnavailableError, _key_set_error_handler)

    app.include_router(config_router)
    app.include_router(jwks_router)
    # Registered last: matches every path.
    app.include_router(proxy_router)

    return app


def main() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = GatewaySettings()
    uvicorn.run(
        "ztgate.core.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
