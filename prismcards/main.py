import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prismcards.api import (
    admin_router,
    cards_router,
    health_router,
    tier_router,
    trade_plans_router,
)
from prismcards.config import settings
from prismcards.db.database import Database
from prismcards.models.failure import KnownError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the database handle for the lifetime of the application."""
    database = Database(settings.database_url, echo=settings.debug)
    app.state.database = database
    await database.create_all()
    try:
        yield
    finally:
        await database.dispose()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("prismcards"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(request: Request, exc: KnownError) -> JSONResponse:
    """Render explainable failures as a FailureDetail body."""
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.kind.value)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


app.include_router(admin_router)
app.include_router(cards_router)
app.include_router(health_router)
app.include_router(tier_router)
app.include_router(trade_plans_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
