import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from tortoise import Tortoise
from tortoise.contrib.fastapi import tortoise_exception_handlers

from .core.config import TORTOISE_ORM_CONFIG
from .core.logging_config import configure_logging
from .features.auth.router import router as auth_router
from .features.reports.router import router as reports_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Connects Tortoise to the reporting database on startup and closes the
    connections on shutdown.
    """
    logger.info("Starting application...")
    await Tortoise.init(config=TORTOISE_ORM_CONFIG)
    logger.info("Tortoise-ORM has been initialized.")

    yield

    await Tortoise.close_connections()
    logger.info("Tortoise-ORM connections have been closed.")


app = FastAPI(
    title="Dealership Reports API",
    description="Analytics reports for dealership and workshop operations.",
    version="0.1.0",
    exception_handlers=tortoise_exception_handlers(),
    lifespan=lifespan,
)


@app.get("/")
async def read_root(request: Request):
    """
    Root endpoint for the API.
    """
    client_host = request.client.host if request.client else "unknown client"
    logger.info(f"Root endpoint '/' accessed by {client_host}")
    return {"message": "Welcome to the Dealership Reports API!"}


app.include_router(auth_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")
