"""User store contract and its in-memory and SQLAlchemy implementations."""

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from usergate.core.database import check_db_connected, get_session_factory
from usergate.models import RefreshToken, User
from usergate.schemas.users import Role, UserAccount, normalize_email
from usergate.services import refresh_registry
from usergate.services.errors import DuplicateEmailError, NotFoundError

if TYPE_CHECKING:
    from usergate.core.config import Settings

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    """Narrow persistence contract used by the session coordinator. Emails compare case-insensitively."""

    def find_by_email(self, email: str) -> UserAccount | None: ...

    def find_by_id(self, user_id: str) -> UserAccount | None: ...

    def insert(self, user: UserAccount) -> UserAccount:
        """Persist a new user. Raises DuplicateEmailError if the email is taken."""
        ...

    def update(self, user: UserAccount) -> UserAccount:
        """
        Write the profile fields of a stored user; refresh tokens are left as stored.
        Raises NotFoundError or DuplicateEmailError.
        """
        ...

    def add_refresh_token(
        self,
        user_id: str,
        token: str,
        keep: Callable[[str], bool] | None = None,
    ) -> UserAccount:
        """
        Append `token` to the user's refresh tokens, first dropping any for which
        `keep` is False. Touches nothing else on the record. Raises NotFoundError.
        """
        ...

    def replace_refresh_token(self, user_id: str, old: str, new: str | None = None) -> bool:
        """
        Remove `old` and append `new` (when given) in one atomic step.

        Returns False, changing nothing, when `old` is not registered for the user,
        so of several concurrent replacements of one token exactly one succeeds.
        """
        ...

    def exists_by_email(self, email: str, excluding_id: str | None = None) -> bool: ...

    def list_users(self) -> list[UserAccount]: ...

    def is_available(self) -> bool: ...


class InMemoryUserStore:
    """
    Process-local store. Check-and-write happens under one lock, so of two
    concurrent inserts with the same email exactly one succeeds.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, UserAccount] = {}
        self._ids_by_email: dict[str, str] = {}

    def find_by_email(self, email: str) -> UserAccount | None:
        with self._lock:
            user_id = self._ids_by_email.get(normalize_email(email))
            return self._users.get(user_id) if user_id else None

    def find_by_id(self, user_id: str) -> UserAccount | None:
        with self._lock:
            return self._users.get(user_id)

    def insert(self, user: UserAccount) -> UserAccount:
        user = user.model_copy(update={"email": normalize_email(user.email)})
        with self._lock:
            if user.email in self._ids_by_email:
                raise DuplicateEmailError()
            self._users[user.id] = user
            self._ids_by_email[user.email] = user.id
        return user

    def update(self, user: UserAccount) -> UserAccount:
        user = user.model_copy(update={"email": normalize_email(user.email)})
        with self._lock:
            current = self._users.get(user.id)
            if current is None:
                raise NotFoundError()
            owner = self._ids_by_email.get(user.email)
            if owner is not None and owner != user.id:
                raise DuplicateEmailError()
            if current.email != user.email:
                del self._ids_by_email[current.email]
                self._ids_by_email[user.email] = user.id
            user = user.model_copy(update={"refresh_tokens": current.refresh_tokens})
            self._users[user.id] = user
        return user

    def add_refresh_token(
        self,
        user_id: str,
        token: str,
        keep: Callable[[str], bool] | None = None,
    ) -> UserAccount:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError()
            if keep is not None:
                user = refresh_registry.prune_expired_refresh_tokens(user, keep)
            user = refresh_registry.add_refresh_token(user, token)
            self._users[user_id] = user
        return user

    def replace_refresh_token(self, user_id: str, old: str, new: str | None = None) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if not refresh_registry.has_refresh_token(user, old):
                return False
            user = refresh_registry.remove_refresh_token(user, old)
            if new is not None:
                user = refresh_registry.add_refresh_token(user, new)
            self._users[user_id] = user
        return True

    def exists_by_email(self, email: str, excluding_id: str | None = None) -> bool:
        with self._lock:
            owner = self._ids_by_email.get(normalize_email(email))
        return owner is not None and owner != excluding_id

    def list_users(self) -> list[UserAccount]:
        with self._lock:
            return list(self._users.values())

    def is_available(self) -> bool:
        return True


def _to_account(row: User) -> UserAccount:
    return UserAccount(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        refresh_tokens=tuple(t.token for t in row.refresh_tokens),
        created_at=row.created_at,
    )


class SqlAlchemyUserStore:
    """Store backed by the users and refresh_tokens tables. Email uniqueness is a unique index."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_by_email(self, email: str) -> UserAccount | None:
        with self._session_factory() as db:
            row = db.query(User).filter(User.email == normalize_email(email)).first()
            return _to_account(row) if row is not None else None

    def find_by_id(self, user_id: str) -> UserAccount | None:
        with self._session_factory() as db:
            row = db.get(User, user_id)
            return _to_account(row) if row is not None else None

    def insert(self, user: UserAccount) -> UserAccount:
        with self._session_factory() as db:
            row = User(
                id=user.id,
                name=user.name,
                email=normalize_email(user.email),
                password_hash=user.password_hash,
                role=user.role.value,
                created_at=user.created_at,
                refresh_tokens=[RefreshToken(token=t) for t in user.refresh_tokens],
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise DuplicateEmailError() from e
            db.refresh(row)
            return _to_account(row)

    def update(self, user: UserAccount) -> UserAccount:
        with self._session_factory() as db:
            row = db.get(User, user.id)
            if row is None:
                raise NotFoundError()
            row.name = user.name
            row.email = normalize_email(user.email)
            row.password_hash = user.password_hash
            row.role = user.role.value
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise DuplicateEmailError() from e
            db.refresh(row)
            return _to_account(row)

    def add_refresh_token(
        self,
        user_id: str,
        token: str,
        keep: Callable[[str], bool] | None = None,
    ) -> UserAccount:
        with self._session_factory() as db:
            row = db.get(User, user_id)
            if row is None:
                raise NotFoundError()
            if keep is not None:
                dropped = [t.token for t in row.refresh_tokens if not keep(t.token)]
                if dropped:
                    db.execute(
                        delete(RefreshToken).where(
                            RefreshToken.user_id == user_id,
                            RefreshToken.token.in_(dropped),
                        ).execution_options(synchronize_session=False)
                    )
            db.add(RefreshToken(user_id=user_id, token=token))
            db.commit()
            db.refresh(row)
            return _to_account(row)

    def replace_refresh_token(self, user_id: str, old: str, new: str | None = None) -> bool:
        with self._session_factory() as db:
            # The row-level DELETE serializes concurrent replacements; only one sees rowcount 1.
            result = db.execute(
                delete(RefreshToken).where(
                    RefreshToken.user_id == user_id,
                    RefreshToken.token == old,
                ).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                return False
            if new is not None:
                db.add(RefreshToken(user_id=user_id, token=new))
            db.commit()
            return True

    def exists_by_email(self, email: str, excluding_id: str | None = None) -> bool:
        with self._session_factory() as db:
            query = db.query(User.id).filter(User.email == normalize_email(email))
            if excluding_id is not None:
                query = query.filter(User.id != excluding_id)
            return query.first() is not None

    def list_users(self) -> list[UserAccount]:
        with self._session_factory() as db:
            rows = db.query(User).order_by(User.created_at, User.id).all()
            return [_to_account(row) for row in rows]

    def is_available(self) -> bool:
        with self._session_factory() as db:
            return check_db_connected(db)


def build_user_store(settings: "Settings") -> UserStore:
    """Create the store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == "database":
        logger.info("Using database user store")
        return SqlAlchemyUserStore(get_session_factory())
    logger.info("Using in-memory user store (data is lost on restart)")
    return InMemoryUserStore()
