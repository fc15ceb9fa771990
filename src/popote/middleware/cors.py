"""CORS for the Popote web app origins.

The API is read-only and authenticated with Bearer tokens, so preflights
only ever need GET with the Authorization and request id headers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from popote.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["Authorization", settings.request_id_header],
        expose_headers=[settings.request_id_header],
        max_age=settings.cors_max_age,
    )
