# main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse

# Import logging utilities early so that the logger configuration is
# applied before any other modules emit log messages.
from salesbot.logging_config import logger
import json
import time

from salesbot.clients.http_client import HTTPClient
from salesbot.core.config import ConfigurationError
from salesbot.routes.evolution import router as evolution_router
from salesbot.routes.notifications import router as notifications_router
from salesbot.routes.sales import router as sales_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # criar e compartilhar o cliente HTTP, a menos que já exista um (testes)
    owned = getattr(app.state, "http_client", None) is None
    if owned:
        app.state.http_client = HTTPClient()
    try:
        yield
    finally:
        if owned:
            app.state.http_client.close()


def create_app() -> FastAPI:
    app = FastAPI(title="salesbot", default_response_class=ORJSONResponse, lifespan=lifespan)

    app.include_router(sales_router)
    app.include_router(notifications_router)
    app.include_router(evolution_router)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error(json.dumps({
            "event": "configuration_error",
            "path": request.url.path,
            "detail": str(exc),
        }))
        return ORJSONResponse(status_code=500, content={"detail": str(exc)})

    # -----------------------------------------------------------------
    # Middleware de logging de requests
    # -----------------------------------------------------------------
    @app.middleware("http")  # type: ignore[misc]
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(json.dumps({
            "event": "inbound_request",
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }))
        return response

    return app


app = create_app()
