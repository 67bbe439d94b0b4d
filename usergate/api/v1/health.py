"""Health check endpoint with user store availability."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from usergate.api.dependencies import get_user_store
from usergate.core.config import Settings, get_settings
from usergate.schemas.health import HealthResponse
from usergate.services.user_store import UserStore

router = APIRouter()


@router.get("/", response_model=HealthResponse)
async def get_health(
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """
    Return service health status and store connectivity.
    Used by load balancers and monitoring.
    """
    database = None
    if settings.STORE_BACKEND == "database":
        available = await run_in_threadpool(store.is_available)
        database = "connected" if available else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        store=settings.STORE_BACKEND,
        database=database,
    )
