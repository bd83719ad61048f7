"""SQLModel implementation of the Account repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import func, or_
from sqlmodel import select

from ...constants.categories import ACCOUNT_TYPES
from ...errors import LedgerValidationError, ReferenceInUseError
from ...money import ZERO, to_money
from ...models.account import Account
from ...models.transaction import Transaction
from ..database import SessionFactory
from ._common import fetch_owned, merge_changes

_MUTABLE_FIELDS = ("name", "account_type")


def _check_account_type(account_type: str) -> None:
    if account_type not in ACCOUNT_TYPES:
        raise LedgerValidationError(
            f"Account type must be one of {', '.join(ACCOUNT_TYPES)}", field="account_type"
        )


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation.

    Balances are read-only here; ``LedgerService`` is their only writer.
    """

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, account_id: int, *, user_id: int) -> Optional[Account]:
        """Retrieve an account by ID."""
        with self.session_factory() as session:
            obj = fetch_owned(session, Account, account_id, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Account]:
        """List the user's accounts in creation order."""
        with self.session_factory() as session:
            statement = select(Account).where(Account.user_id == user_id).order_by(Account.id)  # type: ignore[arg-type]
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_by_type(self, account_type: str, *, user_id: int) -> list[Account]:
        """List the user's accounts of one type."""
        with self.session_factory() as session:
            statement = (
                select(Account)
                .where(Account.user_id == user_id)
                .where(Account.account_type == account_type)
                .order_by(Account.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def total_balance(self, *, user_id: int) -> Decimal:
        """Exact sum of balances across the user's accounts."""
        with self.session_factory() as session:
            balances = session.exec(select(Account.balance).where(Account.user_id == user_id)).all()
            return sum(balances, ZERO)

    def create(
        self,
        *,
        user_id: int,
        name: str,
        account_type: str = "bank",
        balance: Decimal | int | str = 0,
    ) -> Account:
        """Create an account; ``balance`` is its opening balance."""
        name = name.strip()
        if not name:
            raise LedgerValidationError("Account name is required", field="name")
        _check_account_type(account_type)
        try:
            opening = to_money(balance)
        except ValueError as exc:
            raise LedgerValidationError(
                "Opening balance must be a finite number", field="balance"
            ) from exc
        with self.session_factory() as session:
            account = Account(
                user_id=user_id,
                name=name,
                account_type=account_type,
                opening_balance=opening,
                balance=opening,
            )
            session.add(account)
            session.flush()
            session.refresh(account)
            session.expunge(account)
            return account

    def update(
        self, account_id: int, changes: Mapping[str, Any], *, user_id: int
    ) -> Optional[Account]:
        """Rename or retype an account; no-op when it does not exist."""
        if "balance" in changes or "opening_balance" in changes:
            raise LedgerValidationError(
                "Account balances change only through transactions", field="balance"
            )
        if "account_type" in changes:
            _check_account_type(changes["account_type"])
        with self.session_factory() as session:
            account = fetch_owned(session, Account, account_id, user_id)
            if account is None:
                return None
            merge_changes(account, changes, _MUTABLE_FIELDS)
            session.add(account)
            session.flush()
            session.refresh(account)
            session.expunge(account)
            return account

    def delete(self, account_id: int, *, user_id: int) -> None:
        """Delete an account unless transactions still reference it."""
        with self.session_factory() as session:
            account = fetch_owned(session, Account, account_id, user_id)
            if account is None:
                return
            references = session.exec(
                select(func.count(Transaction.id)).where(
                    or_(
                        Transaction.account_id == account_id,
                        Transaction.destination_account_id == account_id,
                    )
                )
            ).one()
            if references:
                raise ReferenceInUseError("account", account_id, references)
            session.delete(account)
