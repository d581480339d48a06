import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from installctl.api.middleware import AuthMiddleware
from installctl.api.routes import clusters
from installctl.config import Config
from installctl.logging import setup_logger
from installctl.errors import (
    BackendError,
    BuildError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from installctl.modules.clusters import ClusterService
from installctl.modules.store import ClusterStore, get_store

load_dotenv()
logger = logging.getLogger("installctl.api")


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=exc.errors)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return Response(status_code=404)

    @app.exception_handler(ConflictError)
    async def conflict(request: Request, exc: ConflictError):
        return Response(status_code=409)

    # Internal failures are logged in full and stay opaque to the client
    @app.exception_handler(BackendError)
    async def backend_error(request: Request, exc: BackendError):
        logger.error(f"{request.method} {request.url.path}: {exc}", exc_info=exc)
        return Response(status_code=500)

    @app.exception_handler(BuildError)
    async def build_error(request: Request, exc: BuildError):
        logger.error(f"{request.method} {request.url.path}: {exc}", exc_info=exc)
        return Response(status_code=500)


def create_app(store: Optional[ClusterStore] = None, assets_dir: Optional[str] = None,
               api_key: Optional[str] = None) -> FastAPI:
    """Build the API application around ``store``.

    Authentication is enabled when ``api_key`` (or INSTALLCTL_API_KEY) is set.
    """
    setup_logger("installctl")
    app = FastAPI(title="installctl")
    app.state.service = ClusterService(store or get_store(), assets_dir=assets_dir)

    token = Config.API_KEY if api_key is None else api_key
    if token:
        app.add_middleware(AuthMiddleware, token=token)

    register_error_handlers(app)
    app.include_router(clusters.router)
    return app
