"""FastAPI application factory for the newsletter service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import store
from .config import Settings, get_settings
from .routes import ROUTERS
from .services import Services, build_services

logger = logging.getLogger(__name__)


def _add_cors(app: FastAPI) -> None:
    """Allow the dashboard origin(s) to call the API."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or incomplete request bodies are a plain 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    services: Optional[Services] = None,
    init_indexes: bool = True,
) -> FastAPI:
    """
    Build the API around one Settings/Services pair.

    Pass ``services`` to inject collaborators (tests, alternative backends);
    otherwise they are built from ``settings`` (or the environment).
    """
    active_settings = settings or (services.settings if services else get_settings())
    owns_services = services is None
    active_services = services or build_services(active_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if init_indexes:
            store.ensure_indexes(active_services.db)
            logger.info("MongoDB indexes ensured on %s", active_services.db.name)
        yield
        # Injected services belong to the caller.
        if owns_services:
            active_services.db.client.close()
            logger.info("MongoDB client closed")

    app = FastAPI(title="Newsletter AI", lifespan=lifespan)
    app.state.services = active_services
    _add_cors(app)
    app.add_exception_handler(RequestValidationError, _validation_error)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    for router in ROUTERS:
        app.include_router(router)
    return app


def run(settings: Settings, *, host: str, port: int, reload: bool = False) -> Any:
    import uvicorn

    if reload:
        return uvicorn.run(
            "newsletter_ai.server:create_app", factory=True, host=host, port=port, reload=True
        )
    return uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    run(
        get_settings(),
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
    )
