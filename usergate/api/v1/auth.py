"""Authorization gate: bearer-token authentication and role-set checks."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from usergate.core.config import Settings, get_settings
from usergate.core.tokens import InvalidTokenError, verify_access_token
from usergate.schemas.auth import AccessClaims
from usergate.schemas.users import Role
from usergate.services.errors import (
    InsufficientPermissionsError,
    NoTokenError,
    TokenRejectedError,
)

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def get_current_claims(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AccessClaims:
    """
    Dependency: require a valid Bearer access token and return its claims.

    No header or a non-Bearer header raises NoTokenError (401); a token that
    fails verification raises TokenRejectedError (403). Claims are also stored
    on request.state.claims.
    """
    if credentials is None:
        raise NoTokenError()
    try:
        claims = verify_access_token(credentials.credentials, settings)
    except InvalidTokenError as e:
        logger.warning("Access token rejected", extra={"path": request.url.path})
        raise TokenRejectedError() from e
    request.state.claims = claims
    return claims


def require_roles(*roles: Role | str) -> Callable[..., AccessClaims]:
    """
    Build a dependency that admits only the listed roles.

    Membership only: Admin does not satisfy require_roles(Role.MODERATOR).
    """
    allowed = frozenset(Role(r) for r in roles)

    def dependency(
        claims: Annotated[AccessClaims, Depends(get_current_claims)],
    ) -> AccessClaims:
        if claims.role not in allowed:
            logger.warning(
                "Unauthorized access attempt",
                extra={"user_id": claims.id, "role": claims.role.value},
            )
            raise InsufficientPermissionsError()
        return claims

    return dependency


require_admin = require_roles(Role.ADMIN)
