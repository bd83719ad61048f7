"""SQLModel implementation of the User repository."""

from __future__ import annotations

from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...errors import DuplicateUsernameError
from ...models.user import User
from ..database import SessionFactory


def normalize_username(username: str) -> str:
    """Usernames are compared and stored trimmed and lower-cased."""

    return username.strip().lower()


class SQLModelUserRepository:
    """SQLModel-based user repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by ID."""
        with self.session_factory() as session:
            user = session.get(User, user_id)
            if user:
                session.expunge(user)
            return user

    def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a user by (normalized) username."""
        with self.session_factory() as session:
            user = session.exec(
                select(User).where(User.username == normalize_username(username))
            ).first()
            if user:
                session.expunge(user)
            return user

    def create(
        self,
        *,
        username: str,
        password_hash: str,
        setup: Optional[Callable[[Session, User], Any]] = None,
    ) -> User:
        """Insert a user; the unique index is the only duplicate check.

        ``setup`` runs in the same transaction once the user has an id, so a
        failure there leaves no user behind.
        """
        normalized = normalize_username(username)
        with self.session_factory() as session:
            user = User(username=normalized, password_hash=password_hash)
            session.add(user)
            try:
                session.flush()
            except IntegrityError as exc:
                raise DuplicateUsernameError(normalized) from exc
            if setup is not None:
                setup(session, user)
                session.flush()
            session.refresh(user)
            session.expunge(user)
        return user
