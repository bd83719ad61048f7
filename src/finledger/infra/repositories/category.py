"""SQLModel implementation of the Category repository."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...constants.categories import DEFAULT_CATEGORIES, TRANSACTION_TYPES
from ...errors import LedgerValidationError, ReferenceInUseError
from ...logging_config import get_logger
from ...models.category import Category
from ...models.transaction import Transaction
from ..database import SessionFactory
from ._common import fetch_owned, merge_changes

logger = get_logger("repositories.category")

_MUTABLE_FIELDS = ("name", "category_type", "icon")


def _check_category_type(category_type: str) -> None:
    if category_type not in TRANSACTION_TYPES:
        raise LedgerValidationError(
            f"Category type must be one of {', '.join(TRANSACTION_TYPES)}",
            field="category_type",
        )


class SQLModelCategoryRepository:
    """SQLModel-based category repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, category_id: int, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by ID."""
        with self.session_factory() as session:
            obj = fetch_owned(session, Category, category_id, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Category]:
        """List all categories in insertion order."""
        with self.session_factory() as session:
            statement = (
                select(Category)
                .where(Category.user_id == user_id)
                .order_by(Category.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_by_type(self, category_type: str, *, user_id: int) -> list[Category]:
        """List categories filtered by type (income/expense/transfer)."""
        with self.session_factory() as session:
            statement = (
                select(Category)
                .where(Category.user_id == user_id)
                .where(Category.category_type == category_type)
                .order_by(Category.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def count(self, *, user_id: int) -> int:
        """Number of categories the user owns."""
        with self.session_factory() as session:
            return session.exec(
                select(func.count(Category.id)).where(Category.user_id == user_id)
            ).one()

    def create(
        self,
        *,
        user_id: int,
        name: str,
        category_type: str = "expense",
        icon: Optional[str] = None,
    ) -> Category:
        """Create a new category."""
        name = name.strip()
        if not name:
            raise LedgerValidationError("Category name is required", field="name")
        _check_category_type(category_type)
        with self.session_factory() as session:
            category = Category(
                user_id=user_id, name=name, category_type=category_type, icon=icon or None
            )
            session.add(category)
            session.flush()
            session.refresh(category)
            session.expunge(category)
            return category

    def update(
        self, category_id: int, changes: Mapping[str, Any], *, user_id: int
    ) -> Optional[Category]:
        """Merge changes into a category; no-op when it does not exist.

        The type of a category in use cannot change, otherwise the transactions
        filed under it would no longer match their category's type.
        """
        with self.session_factory() as session:
            category = fetch_owned(session, Category, category_id, user_id)
            if category is None:
                return None
            new_type = changes.get("category_type", category.category_type)
            if new_type != category.category_type:
                _check_category_type(new_type)
                if self._reference_count(session, category_id):
                    raise LedgerValidationError(
                        "Cannot change the type of a category that has transactions",
                        field="category_type",
                    )
            merge_changes(category, changes, _MUTABLE_FIELDS)
            session.add(category)
            session.flush()
            session.refresh(category)
            session.expunge(category)
            return category

    def delete(self, category_id: int, *, user_id: int) -> None:
        """Delete a category unless transactions still reference it."""
        with self.session_factory() as session:
            category = fetch_owned(session, Category, category_id, user_id)
            if category is None:
                return
            references = self._reference_count(session, category_id)
            if references:
                raise ReferenceInUseError("category", category_id, references)
            session.delete(category)

    def seed_defaults(self, *, user_id: int) -> int:
        """Insert the default category set once per user.

        Skipped entirely when the user already has any category. Returns the
        number of categories inserted.
        """
        with self.session_factory() as session:
            inserted = self.add_defaults(session, user_id)
        if inserted:
            logger.info("Seeded default categories", extra={"user_id": user_id})
        return inserted

    @staticmethod
    def add_defaults(session: Session, user_id: int) -> int:
        """Stage the defaults in the caller's ``session``; the caller commits."""
        existing = session.exec(
            select(func.count(Category.id)).where(Category.user_id == user_id)
        ).one()
        if existing:
            return 0
        session.add_all(
            Category(user_id=user_id, name=name, category_type=category_type, icon=icon)
            for name, category_type, icon in DEFAULT_CATEGORIES
        )
        return len(DEFAULT_CATEGORIES)

    @staticmethod
    def _reference_count(session: Session, category_id: int) -> int:
        return session.exec(
            select(func.count(Transaction.id)).where(Transaction.category_id == category_id)
        ).one()
