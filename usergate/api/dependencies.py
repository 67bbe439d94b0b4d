"""FastAPI dependencies for the user store and session coordinator."""

from typing import Annotated

from fastapi import Depends, Request

from usergate.core.config import Settings, get_settings
from usergate.services.sessions import SessionCoordinator
from usergate.services.user_store import UserStore


def get_user_store(request: Request) -> UserStore:
    """Store created at startup and held on app.state."""
    return request.app.state.user_store


def get_session_coordinator(
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionCoordinator:
    return SessionCoordinator(store, settings)
