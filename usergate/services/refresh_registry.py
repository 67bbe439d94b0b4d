"""Per-user set of live refresh tokens: add, remove, membership."""

from collections.abc import Callable

from usergate.schemas.users import UserAccount


def add_refresh_token(user: UserAccount, token: str) -> UserAccount:
    """Return a copy of `user` with `token` appended to its refresh tokens."""
    return user.model_copy(update={"refresh_tokens": (*user.refresh_tokens, token)})


def remove_refresh_token(user: UserAccount, token: str) -> UserAccount:
    """Return a copy of `user` without any occurrence of `token`. Absent tokens are a no-op."""
    remaining = tuple(t for t in user.refresh_tokens if t != token)
    if len(remaining) == len(user.refresh_tokens):
        return user
    return user.model_copy(update={"refresh_tokens": remaining})


def has_refresh_token(user: UserAccount | None, token: str) -> bool:
    """
    True when `token` is currently registered for `user`.

    Checked after signature/expiry verification: a revoked token still verifies
    cryptographically, so membership is what makes logout effective.
    """
    if user is None or not token:
        return False
    return token in user.refresh_tokens


def prune_expired_refresh_tokens(
    user: UserAccount,
    is_valid: Callable[[str], bool],
) -> UserAccount:
    """Return a copy of `user` keeping only refresh tokens for which `is_valid` is True."""
    kept = tuple(t for t in user.refresh_tokens if is_valid(t))
    if len(kept) == len(user.refresh_tokens):
        return user
    return user.model_copy(update={"refresh_tokens": kept})
