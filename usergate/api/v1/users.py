"""User and session endpoints: register, login, refresh, logout, profile, admin listing."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from usergate.api.dependencies import get_session_coordinator
from usergate.api.v1.auth import get_current_claims, require_admin
from usergate.schemas.auth import AccessClaims, LoginRequest, RefreshTokenRequest
from usergate.schemas.common import Envelope, ok
from usergate.schemas.users import (
    RegisterRequest,
    Role,
    SortField,
    SortOrder,
    UpdateProfileRequest,
    UserListQuery,
    to_public,
)
from usergate.services.sessions import SessionCoordinator

router = APIRouter()

Sessions = Annotated[SessionCoordinator, Depends(get_session_coordinator)]
CurrentClaims = Annotated[AccessClaims, Depends(get_current_claims)]
AdminClaims = Annotated[AccessClaims, Depends(require_admin)]


@router.post(
    "/register",
    response_model=Envelope,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def register(body: RegisterRequest, sessions: Sessions) -> Envelope:
    """Create an account; returns the user (no password) plus an access/refresh token pair."""
    user, pair = await sessions.register(body.name, body.email, body.password, body.role)
    return ok(
        "User created successfully",
        {"user": to_public(user), **pair.model_dump(by_alias=True)},
    )


@router.post("/login", response_model=Envelope, response_model_exclude_unset=True)
async def login(body: LoginRequest, sessions: Sessions) -> Envelope:
    """
    Authenticate with email and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    pair = await sessions.login(body.email, body.password)
    return ok("Login successful", pair.model_dump(by_alias=True))


@router.post("/refresh", response_model=Envelope, response_model_exclude_unset=True)
async def refresh(body: RefreshTokenRequest, sessions: Sessions) -> Envelope:
    """Exchange a registered refresh token for a new access token."""
    result = await sessions.refresh(body.refresh_token)
    return ok("Token refreshed successfully", result.model_dump(by_alias=True, exclude_none=True))


@router.post("/logout", response_model=Envelope, response_model_exclude_unset=True)
async def logout(body: RefreshTokenRequest, sessions: Sessions, _claims: CurrentClaims) -> Envelope:
    """Revoke the given refresh token. Requires a valid access token."""
    await sessions.logout(body.refresh_token)
    return ok("Logout successful", None)


@router.get("/profile", response_model=Envelope, response_model_exclude_unset=True)
async def get_profile(claims: CurrentClaims, sessions: Sessions) -> Envelope:
    user = await sessions.get_profile(claims.id)
    return ok("Profile retrieved successfully", to_public(user))


@router.put("/profile", response_model=Envelope, response_model_exclude_unset=True)
async def update_profile(
    body: UpdateProfileRequest,
    claims: CurrentClaims,
    sessions: Sessions,
) -> Envelope:
    user = await sessions.update_profile(claims.id, name=body.name, email=body.email)
    return ok("Profile updated successfully", to_public(user))


@router.get("/all", response_model=Envelope, response_model_exclude_unset=True)
async def list_users(
    _admin: AdminClaims,
    sessions: Sessions,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdAt",
    order: SortOrder = "desc",
    search: Annotated[str | None, Query(max_length=100)] = None,
    role: Role | None = None,
) -> Envelope:
    """List users (admin only) with search, role filter, sorting and paging."""
    query = UserListQuery(
        page=page, limit=limit, sort_by=sort_by, order=order, search=search, role=role
    )
    users, pagination = await sessions.list_users(query)
    return ok(
        "Users retrieved successfully",
        {"users": [to_public(u) for u in users], "pagination": pagination},
    )


@router.get("/{user_id}", response_model=Envelope, response_model_exclude_unset=True)
async def get_user(user_id: str, _admin: AdminClaims, sessions: Sessions) -> Envelope:
    """Get one user by id (admin only)."""
    user = await sessions.get_user(user_id)
    return ok("User retrieved successfully", to_public(user))
