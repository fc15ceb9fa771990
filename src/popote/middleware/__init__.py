"""Middleware registration."""

from fastapi import FastAPI

from popote.config import Settings
from popote.middleware.cors import setup_cors
from popote.middleware.error_handler import setup_error_handlers
from popote.middleware.logging import setup_logging
from popote.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order; CORS is added last so it
    wraps every response, including errors.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware, header=settings.request_id_header)
    setup_cors(app, settings)
