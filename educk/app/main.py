"""
FastAPI application factory.

Run:
- educk  (console script; see app/server.py)
- python -m educk

create_app() takes everything it needs explicitly: Settings, the loaded
TemplateStore, and an optional ENTSO-E client. Nothing is read from the
environment here.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from educk import __version__
from educk.app.routes import pages, surplus
from educk.core.config import Settings
from educk.core.logging import log_access
from educk.domain.errors import EduckError, EntsoeError, ErrorCodes, RenderError, RequestParseError
from educk.entsoe.client import EntsoeClient
from educk.templates.store import TemplateStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


# =============================================================================
# Error Responses
# =============================================================================


def error_response(request: Request, status_code: int, message: str, code: str) -> Response:
    """JSON envelope under /api/, plain text elsewhere."""
    if request.scope.get("path", "").startswith(API_PREFIX):
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "data": None, "error": message, "code": code},
        )
    return PlainTextResponse(HTTPStatus(status_code).phrase, status_code=status_code)


async def handle_educk_error(request: Request, exc: EduckError) -> Response:
    """Per-request errors → HTTP status (never propagated)."""
    status_code = exc.status_code or 500

    if isinstance(exc, EntsoeError) and exc.code == ErrorCodes.UPSTREAM_NOT_CONFIGURED:
        status_code = 503

    if isinstance(exc, RenderError):
        logger.error(f"Render failed: {exc}", exc_info=exc)
    elif status_code >= 500:
        logger.error(f"Request failed: {exc}")
    else:
        logger.info(f"Rejected request: {exc}")

    return error_response(request, status_code, exc.message, exc.code)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    """FastAPI validation errors are reported as malformed requests (400)."""
    parse_error = RequestParseError(
        ErrorCodes.REQUEST_INVALID,
        "invalid request parameters",
        errors=exc.errors(),
    )
    return await handle_educk_error(request, parse_error)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifecycle.

    Startup: nothing to load (templates are loaded before binding)
    Shutdown: close the ENTSO-E connection pool
    """
    store: TemplateStore = app.state.templates
    logger.info(f"Serving {len(store.routable_keys())} routable templates")

    yield

    client: EntsoeClient | None = app.state.entsoe_client
    if client is not None:
        await client.aclose()
    logger.info("Application shut down")


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings,
    store: TemplateStore,
    entsoe_client: EntsoeClient | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    Args:
        settings: process configuration
        store: templates loaded at startup (read-only)
        entsoe_client: enables /api/v1/renewable-surplus/* when given
    """
    app = FastAPI(
        title="educk",
        description="Template-driven HTTP server + renewable surplus API",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.templates = store
    app.state.entsoe_client = entsoe_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    timeout = settings.request_timeout or None

    @app.middleware("http")
    async def access_log(request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        try:
            async with asyncio.timeout(timeout):
                response = await call_next(request)
        except TimeoutError:
            logger.warning(
                f"[{ErrorCodes.REQUEST_TIMEOUT}] {request.method} {request.scope['path']} "
                f"exceeded {timeout}s"
            )
            response = error_response(request, 504, "request timed out", ErrorCodes.REQUEST_TIMEOUT)

        duration_ms = (time.perf_counter() - started) * 1000
        log_access(request.method, request.scope["path"], response.status_code, duration_ms)
        return response

    app.add_exception_handler(EduckError, handle_educk_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    # API first; the template catch-all must stay last
    app.include_router(surplus.api_router, prefix="/api/v1", tags=["Renewable Surplus API"])
    app.include_router(pages.router, tags=["Pages"])

    return app
