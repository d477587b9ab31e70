"""
FastAPI application entry point for the storefront.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.config import get_settings
from storefront.dependencies import get_session_codec
from storefront.guard import RoutingGuard
from storefront.pages import router as pages_router
from storefront.routes import router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "message": message}
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Storefront", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pages_router)

    guard = RoutingGuard.from_settings(settings, get_session_codec())

    @app.middleware("http")
    async def route_guard(request: Request, call_next):
        path = request.url.path
        if not path.startswith(settings.api_prefix):
            decision = guard.evaluate(path, request.cookies)
            if not decision.allowed:
                logger.info("Redirecting %s to %s", path, decision.redirect_to)
                return RedirectResponse(decision.redirect_to, status_code=307)
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        return _error(400, message)

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s", request.url.path)
        return _error(500, "Database error")

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(500, "Internal server error")

    return app


app = create_app()
