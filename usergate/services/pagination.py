"""Search, sort and page the admin user listing."""

import math
from typing import Any

from usergate.schemas.users import UserAccount, UserListQuery

_SORT_ATTRIBUTES = {
    "name": "name",
    "email": "email",
    "role": "role",
    "createdAt": "created_at",
}


def filter_users(users: list[UserAccount], search: str | None, role: Any = None) -> list[UserAccount]:
    """Keep users whose name or email contains `search` (case-insensitive) and whose role matches."""
    result = users
    if role is not None:
        result = [u for u in result if u.role == role]
    if search and search.strip():
        needle = search.strip().lower()
        result = [u for u in result if needle in u.name.lower() or needle in u.email.lower()]
    return result


def sort_users(users: list[UserAccount], sort_by: str = "createdAt", order: str = "desc") -> list[UserAccount]:
    """Stable sort on one field; strings compare case-insensitively."""
    attribute = _SORT_ATTRIBUTES[sort_by]

    def key(user: UserAccount) -> Any:
        value = getattr(user, attribute)
        if attribute == "role":
            return value.value.lower()
        if isinstance(value, str):
            return value.lower()
        return value

    return sorted(users, key=key, reverse=order == "desc")


def pagination_metadata(total_items: int, page: int, limit: int) -> dict[str, Any]:
    total_pages = math.ceil(total_items / limit) if total_items else 0
    return {
        "totalItems": total_items,
        "totalPages": total_pages,
        "currentPage": page,
        "pageSize": limit,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }


def paginate_users(
    users: list[UserAccount],
    query: UserListQuery,
) -> tuple[list[UserAccount], dict[str, Any]]:
    """Filter, sort and slice `users`; return the page and its metadata."""
    matched = filter_users(users, query.search, query.role)
    ordered = sort_users(matched, query.sort_by, query.order)
    start = (query.page - 1) * query.limit
    return ordered[start : start + query.limit], pagination_metadata(len(matched), query.page, query.limit)
