"""API v1 routes."""

from fastapi import APIRouter

from usergate.api.v1 import users

router = APIRouter()
router.include_router(users.router, tags=["users"])
