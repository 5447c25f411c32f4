from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from supplychain.api import analytics, auth, health, orders, products, simulation, tracking
from supplychain.core.container import Container
from supplychain.core.exceptions import (
    PersistenceError,
    VisionRequestError,
    VisionServiceUnavailableError,
)
from supplychain.core.logging import configure_logging
from supplychain.core.settings import settings
from supplychain.db.base import Base

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = app.container.engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("app.started")

    yield

    await engine.dispose()
    logger.info("app.stopped")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException):
        response = _error(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        logger.error("api.persistence_error", path=request.url.path, error=str(exc))
        return _error(500, "Storage unavailable")

    @app.exception_handler(VisionServiceUnavailableError)
    async def vision_unavailable(_: Request, exc: VisionServiceUnavailableError):
        return _error(503, str(exc))

    @app.exception_handler(VisionRequestError)
    async def vision_failed(request: Request, exc: VisionRequestError):
        logger.error("api.vision_error", path=request.url.path, error=str(exc))
        return _error(502, "Image analysis failed")


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Supply Chain Analytics", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    container = Container()
    app.container = container
    container.wire(packages=["supplychain.api"])

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(orders.router)
    app.include_router(tracking.router)
    app.include_router(simulation.router)
    app.include_router(analytics.router)

    register_exception_handlers(app)
    return app


app = create_app()
