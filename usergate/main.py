"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from usergate.api.error_handling import register_exception_handlers
from usergate.api.v1 import health
from usergate.api.v1 import router as v1_router
from usergate.core.config import settings
from usergate.core.security import dummy_password_hash
from usergate.services.user_store import build_user_store

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the user store once per process and share it through app.state."""
    app.state.user_store = build_user_store(settings)
    # First unknown-email login would otherwise pay for computing the dummy hash.
    await run_in_threadpool(dummy_password_hash, settings.BCRYPT_ROUNDS)
    logger.info("Usergate started", extra={"environment": settings.APP_ENV})
    yield


app = FastAPI(
    title="Usergate API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(v1_router, prefix=settings.API_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Usergate API"}
