import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse

from src.api.deps import get_settings
from src.api.pages import render_result
from src.api.routes import public_subscribe
from src.app_shell.config import validate_startup
from src.components.subscription import PipelineResult, PipelineState, ResultCode
from src.core.strings import get_strings
from src.rules.loader import load_rules
from src.rules.models import Rules
from src.services.context import AppContext

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'self'; style-src 'self' 'unsafe-inline'; form-action 'self'",
}


def create_app(rules: Rules, context: AppContext | None = None) -> FastAPI:
    """
    Build the application for validated rules.

    The context (stores, backends, queues) is created here unless given;
    it is started and stopped by the lifespan handler.
    """
    ctx = context if context is not None else AppContext.create(rules)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        ctx.start()
        logger.info("%d mailing lists available at %s", len(ctx.lists), rules.public_url)
        yield
        ctx.stop()

    app = FastAPI(
        title="Subscribe",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.context = ctx

    # --- Routers ---
    app.include_router(public_subscribe.router, prefix=rules.base_path, tags=["Subscribe"])

    @app.middleware("http")
    async def security_headers(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> HTMLResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        result = PipelineResult(code=ResultCode.OPERATION_FAILED, state=PipelineState.FAILED)
        strings = get_strings(rules.default_locale, rules.ui_strings)
        return HTMLResponse(
            render_result(strings, result, rules.base_path, rules.default_locale),
            status_code=500,
        )

    @app.get("/robots.txt", response_class=PlainTextResponse, include_in_schema=False)
    def robots() -> str:
        return "User-agent: *\nDisallow: /\n"

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "subscribe",
            "lists": len(ctx.lists),
            "mode": rules.pipeline.mode,
        }

    return app


def app_factory() -> FastAPI:
    """Entry point for `uvicorn --factory src.api.main:app_factory`."""
    settings = get_settings()
    rules = load_rules(settings.rules_path)
    validate_startup(rules)
    return create_app(rules)
