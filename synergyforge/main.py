import argparse
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from synergyforge.api import (
    associations_router,
    batch_router,
    cards_router,
    decks_router,
    health_router,
)
from synergyforge.config import settings
from synergyforge.db.database import init_db
from synergyforge.models.failure import KnownError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("synergyforge"),
    lifespan=lifespan,
)

app.include_router(associations_router)
app.include_router(batch_router)
app.include_router(cards_router)
app.include_router(decks_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Answer a known failure with its classification and status code."""
    logger.warning("%s: %s", exc.kind.value, exc.message)
    content = exc.to_detail().model_dump(mode="json")
    return JSONResponse(status_code=exc.status_code, content=content)


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    parser = argparse.ArgumentParser(description="SynergyForge API server")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--log-level", type=str, default="info", help="uvicorn log level")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    run()
