"""Exception handlers: every error leaves the API as ``{"detail": ...}`` JSON."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from popote.progression.catalog import CatalogError

logger = structlog.get_logger()


def _detail(status_code: int, detail: object, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


def setup_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = _detail(exc.status_code, exc.detail)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _detail(422, "Validation error", errors=exc.errors())

    @app.exception_handler(CatalogError)
    async def on_catalog_error(request: Request, exc: CatalogError) -> JSONResponse:
        """A broken level or badge catalog is an operator problem, not a client one."""
        logger.error("catalog_invalid", path=request.url.path, error=str(exc))
        return _detail(503, "Progression catalog unavailable")

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", path=request.url.path, method=request.method, exc_info=exc)
        return _detail(500, "Internal server error")
