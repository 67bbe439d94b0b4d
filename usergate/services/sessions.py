"""
Session coordinator: registration, login, token refresh, logout and profile access.

Composes the password hasher, token issuer/verifier and refresh-token registry
against an injected user store. Bcrypt and store calls run in the threadpool so
the event loop is not blocked while other requests are in flight.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fastapi.concurrency import run_in_threadpool

from usergate.core.security import (
    PasswordPolicy,
    WeakCredentialError,
    dummy_password_hash,
    hash_password,
    verify_password,
)
from usergate.core.tokens import (
    InvalidTokenError,
    issue_access_token,
    issue_refresh_token,
    issue_token_pair,
    verify_refresh_token,
)
from usergate.schemas.auth import RefreshResult, TokenPair
from usergate.schemas.common import ErrorDetail
from usergate.schemas.users import Role, UserAccount, UserListQuery, normalize_email
from usergate.services.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidRefreshTokenError,
    NotFoundError,
)
from usergate.services.pagination import paginate_users
from usergate.services.refresh_registry import has_refresh_token
from usergate.services.user_store import UserStore

if TYPE_CHECKING:
    from usergate.core.config import Settings

logger = logging.getLogger(__name__)


def _password_errors(violations: list[str]) -> list[ErrorDetail]:
    return [ErrorDetail(field="password", message=v) for v in violations]


def _verify_against_dummy_hash(password: str, rounds: int) -> bool:
    return verify_password(password, dummy_password_hash(rounds))


class SessionCoordinator:
    """Authentication and session lifecycle over a user store."""

    def __init__(self, store: UserStore, settings: "Settings") -> None:
        self.store = store
        self.settings = settings
        self.policy = PasswordPolicy.from_settings(settings)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Role | str | None = None,
    ) -> tuple[UserAccount, TokenPair]:
        """
        Create a user and sign them in.

        Raises InvalidInputError (missing fields or weak password, all violations
        listed) or DuplicateEmailError.
        """
        name = (name or "").strip()
        email = normalize_email(email or "")
        if not name or not email or not password:
            raise InvalidInputError("Name, email, and password are required")

        violations = self.policy.violations(password)
        if violations:
            raise InvalidInputError("Password does not meet requirements", _password_errors(violations))

        if await run_in_threadpool(self.store.exists_by_email, email):
            logger.warning("Registration rejected", extra={"reason": "duplicate_email"})
            raise DuplicateEmailError()

        try:
            password_hash = await run_in_threadpool(
                hash_password, password, self.policy, self.settings.BCRYPT_ROUNDS
            )
        except WeakCredentialError as e:
            raise InvalidInputError(
                "Password does not meet requirements", _password_errors(e.violations)
            ) from e

        user = UserAccount(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            password_hash=password_hash,
            role=Role(role) if role else Role.USER,
            created_at=datetime.now(UTC),
        )
        # The store re-checks email uniqueness atomically; a concurrent duplicate fails here.
        user = await run_in_threadpool(self.store.insert, user)

        pair = issue_token_pair(user.id, user.email, user.role, self.settings)
        user = await run_in_threadpool(self.store.add_refresh_token, user.id, pair.refresh_token)
        logger.info("User registered", extra={"user_id": user.id, "role": user.role.value})
        return user, pair

    async def login(self, email: str, password: str) -> TokenPair:
        """
        Verify credentials and mint a token pair.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        user = await run_in_threadpool(self.store.find_by_email, email or "")
        if user is None:
            # Same bcrypt cost as a real check so timing does not reveal the account exists.
            await run_in_threadpool(
                _verify_against_dummy_hash, password or "", self.settings.BCRYPT_ROUNDS
            )
            logger.warning("Login failed", extra={"reason": "unknown_email"})
            raise InvalidCredentialsError()
        if not await run_in_threadpool(verify_password, password or "", user.password_hash):
            logger.warning("Login failed", extra={"reason": "wrong_password", "user_id": user.id})
            raise InvalidCredentialsError()

        pair = issue_token_pair(user.id, user.email, user.role, self.settings)
        # Only the token list is written, so a concurrent profile change is not undone.
        await run_in_threadpool(
            self.store.add_refresh_token, user.id, pair.refresh_token, self._refresh_token_verifies
        )
        logger.info("User logged in", extra={"user_id": user.id})
        return pair

    async def refresh(self, refresh_token: str | None) -> RefreshResult:
        """
        Exchange a registered refresh token for a new access token.

        With ROTATE_REFRESH_TOKENS the presented token is revoked and a new one
        registered in one atomic store step; a token can be rotated only once.
        """
        user = await self._user_for_refresh_token(refresh_token)
        if not self.settings.ROTATE_REFRESH_TOKENS:
            access_token = issue_access_token(user.id, user.email, user.role, self.settings)
            logger.info("Access token refreshed", extra={"user_id": user.id})
            return RefreshResult(access_token=access_token)

        new_refresh = issue_refresh_token(user.id, self.settings)
        await self._revoke_refresh_token(user.id, refresh_token, new_refresh)
        access_token = issue_access_token(user.id, user.email, user.role, self.settings)
        logger.info("Access token refreshed, refresh token rotated", extra={"user_id": user.id})
        return RefreshResult(access_token=access_token, refresh_token=new_refresh)

    async def logout(self, refresh_token: str | None) -> None:
        """Revoke a registered refresh token."""
        user = await self._user_for_refresh_token(refresh_token)
        await self._revoke_refresh_token(user.id, refresh_token)
        logger.info("User logged out", extra={"user_id": user.id})

    async def get_profile(self, user_id: str) -> UserAccount:
        user = await run_in_threadpool(self.store.find_by_id, user_id)
        if user is None:
            raise NotFoundError()
        return user

    async def update_profile(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
    ) -> UserAccount:
        """Change name and/or email. Email must not belong to any other user."""
        user = await self.get_profile(user_id)
        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name.strip()
        if email is not None:
            email = normalize_email(email)
            if email != user.email:
                if await run_in_threadpool(self.store.exists_by_email, email, user.id):
                    raise DuplicateEmailError()
                updates["email"] = email
        if not updates:
            return user
        user = await run_in_threadpool(self.store.update, user.model_copy(update=updates))
        logger.info("Profile updated", extra={"user_id": user.id, "fields": ",".join(sorted(updates))})
        return user

    async def list_users(self, query: UserListQuery) -> tuple[list[UserAccount], dict[str, Any]]:
        users = await run_in_threadpool(self.store.list_users)
        page, metadata = paginate_users(users, query)
        if metadata["totalItems"] == 0:
            raise NotFoundError("No users found")
        return page, metadata

    async def get_user(self, user_id: str) -> UserAccount:
        return await self.get_profile(user_id)

    async def _user_for_refresh_token(self, refresh_token: str | None) -> UserAccount:
        """Verify signature and expiry, then require the token to be registered for its user."""
        if not refresh_token:
            raise InvalidInputError(
                "Refresh token is required",
                [ErrorDetail(field="refreshToken", message="Refresh token is required")],
            )
        try:
            claims = verify_refresh_token(refresh_token, self.settings)
        except InvalidTokenError as e:
            raise InvalidRefreshTokenError() from e
        user = await run_in_threadpool(self.store.find_by_id, claims.id)
        if not has_refresh_token(user, refresh_token):
            logger.warning("Refresh token not registered", extra={"user_id": claims.id})
            raise InvalidRefreshTokenError()
        return user

    async def _revoke_refresh_token(self, user_id: str, token: str, replacement: str | None = None) -> None:
        """Remove `token` (adding `replacement`); lost races with another revocation raise."""
        if not await run_in_threadpool(self.store.replace_refresh_token, user_id, token, replacement):
            logger.warning("Refresh token already revoked", extra={"user_id": user_id})
            raise InvalidRefreshTokenError()

    def _refresh_token_verifies(self, token: str) -> bool:
        try:
            verify_refresh_token(token, self.settings)
        except InvalidTokenError:
            return False
        return True
