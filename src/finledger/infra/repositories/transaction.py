"""SQLModel implementation of the Transaction repository (read side).

Writes go through ``LedgerService`` so every mutation carries its balance
effect; this repository only reads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlmodel import col, select

from ...models.account import Account
from ...models.category import Category
from ...models.transaction import Transaction
from ..database import SessionFactory
from ._common import fetch_owned


class SQLModelTransactionRepository:
    """SQLModel-based transaction repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        with self.session_factory() as session:
            obj = fetch_owned(session, Transaction, transaction_id, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Transaction]:
        """List every transaction of the user in insertion order."""
        return self.search(user_id=user_id)

    def filter_by_date_range(
        self, start_date: datetime, end_date: datetime, *, user_id: int
    ) -> list[Transaction]:
        """Get transactions within an inclusive date range."""
        return self.search(start_date=start_date, end_date=end_date, user_id=user_id)

    def filter_by_account(self, account_id: int, *, user_id: int) -> list[Transaction]:
        """Transactions touching the account as source or destination."""
        return self.search(account_id=account_id, user_id=user_id)

    def filter_by_category(self, category_id: int, *, user_id: int) -> list[Transaction]:
        """Get all transactions for a specific category."""
        return self.search(category_id=category_id, user_id=user_id)

    def search(
        self,
        *,
        user_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        before: Optional[datetime] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        txn_type: Optional[str] = None,
        text: Optional[str] = None,
    ) -> list[Transaction]:
        """Filter transactions; results keep insertion order.

        ``start_date``/``end_date`` bound the date inclusively, ``before`` is an
        exclusive upper bound. ``text`` matches the note, account name or
        category name, case-insensitively.
        """
        with self.session_factory() as session:
            statement = select(Transaction).where(Transaction.user_id == user_id)

            if start_date is not None:
                statement = statement.where(Transaction.occurred_at >= start_date)
            if end_date is not None:
                statement = statement.where(Transaction.occurred_at <= end_date)
            if before is not None:
                statement = statement.where(Transaction.occurred_at < before)
            if account_id is not None:
                statement = statement.where(
                    or_(
                        Transaction.account_id == account_id,
                        Transaction.destination_account_id == account_id,
                    )
                )
            if category_id is not None:
                statement = statement.where(Transaction.category_id == category_id)
            if txn_type is not None:
                statement = statement.where(Transaction.txn_type == txn_type)
            if text:
                needle = f"%{text.strip().lower()}%"
                statement = (
                    statement.outerjoin(Account, Account.id == Transaction.account_id)
                    .outerjoin(Category, Category.id == Transaction.category_id)
                    .where(
                        or_(
                            func.lower(func.coalesce(Transaction.note, "")).like(needle),
                            func.lower(Account.name).like(needle),
                            func.lower(Category.name).like(needle),
                        )
                    )
                )

            statement = statement.order_by(col(Transaction.id))
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows
