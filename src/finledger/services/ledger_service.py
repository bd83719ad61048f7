"""Ledger mutations that keep account balances consistent.

Every create, update and delete of a transaction runs as one unit: the row
change and its balance effect(s) share a single database transaction, and
each service instance holds a re-entrant lock that serializes its protocols,
so callers sharing that instance never see a reversed-but-not-reapplied
balance. Amounts are exact ``Decimal`` values stored as integer cents.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import update
from sqlmodel import Session, col, select

from ..constants.categories import TRANSACTION_TYPES, TRANSFER
from ..domain.entries import BalanceEntry, entry_for
from ..errors import LedgerError, LedgerValidationError
from ..infra.database import SessionFactory
from ..infra.repositories._common import fetch_owned, merge_changes
from ..logging_config import get_logger
from ..money import ZERO, to_money
from ..models.account import Account
from ..models.category import Category
from ..models.transaction import Transaction

logger = get_logger("services.ledger")

_UPDATABLE_FIELDS = (
    "account_id",
    "category_id",
    "txn_type",
    "amount",
    "occurred_at",
    "note",
    "destination_account_id",
)


@dataclass(frozen=True, slots=True)
class BalanceDiscrepancy:
    """An account whose stored balance disagrees with its transaction log."""

    account_id: int
    name: str
    recorded: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.recorded - self.expected


class LedgerService:
    """Create, update and delete transactions together with their balance effects."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self._lock = threading.RLock()

    def create_transaction(
        self,
        user_id: int,
        *,
        account_id: int,
        category_id: int,
        txn_type: str,
        amount: Decimal | int | str,
        occurred_at: datetime | date,
        note: Optional[str] = None,
        destination_account_id: Optional[int] = None,
    ) -> Transaction:
        """Persist a transaction and apply its balance effect atomically."""

        with self._lock, self.session_factory() as session:
            txn = Transaction(
                user_id=user_id,
                account_id=account_id,
                category_id=category_id,
                txn_type=txn_type,
                amount=amount,
                occurred_at=occurred_at,
                note=note,
                destination_account_id=destination_account_id,
            )
            entry = self._validate(session, txn, user_id)
            session.add(txn)
            session.flush()
            self._apply(session, entry, user_id)
            session.refresh(txn)
            session.expunge(txn)

        logger.info(
            "Transaction created",
            extra={"user_id": user_id, "transaction_id": txn.id, "txn_type": txn.txn_type},
        )
        return txn

    def update_transaction(
        self, transaction_id: int, changes: Mapping[str, Any], *, user_id: int
    ) -> Optional[Transaction]:
        """Reverse the stored effect, merge ``changes`` and apply the new effect.

        Works from full before/after snapshots so any combination of changed
        fields (account, type, amount, destination) stays consistent. Returns
        ``None`` when the transaction does not exist.
        """

        with self._lock, self.session_factory() as session:
            txn = fetch_owned(session, Transaction, transaction_id, user_id)
            if txn is None:
                return None

            previous = entry_for(txn)

            # pending edits must not reach the database before validation
            with session.no_autoflush:
                merge_changes(txn, changes, _UPDATABLE_FIELDS)
                if txn.txn_type != TRANSFER:
                    txn.destination_account_id = None
                entry = self._validate(session, txn, user_id)
            session.add(txn)
            session.flush()

            self._apply(session, previous.inverse(), user_id)
            self._apply(session, entry, user_id)
            session.refresh(txn)
            session.expunge(txn)

        logger.info(
            "Transaction updated",
            extra={"user_id": user_id, "transaction_id": transaction_id, "fields": sorted(changes)},
        )
        return txn

    def delete_transaction(self, transaction_id: int, *, user_id: int) -> bool:
        """Reverse a transaction's effect and remove it; ``False`` when absent."""

        with self._lock, self.session_factory() as session:
            txn = fetch_owned(session, Transaction, transaction_id, user_id)
            if txn is None:
                return False
            self._apply(session, entry_for(txn).inverse(), user_id)
            session.delete(txn)

        logger.info(
            "Transaction deleted",
            extra={"user_id": user_id, "transaction_id": transaction_id},
        )
        return True

    def expected_balances(self, *, user_id: int) -> dict[int, Decimal]:
        """Recompute every account balance from opening balance plus the log."""

        with self._lock, self.session_factory() as session:
            accounts = session.exec(select(Account).where(Account.user_id == user_id)).all()
            expected = {a.id: a.opening_balance for a in accounts}
            transactions = session.exec(
                select(Transaction).where(Transaction.user_id == user_id).order_by(col(Transaction.id))
            ).all()
            for txn in transactions:
                for account_id, delta in entry_for(txn).legs():
                    expected[account_id] = expected.get(account_id, ZERO) + delta
            return expected

    def verify_balances(self, *, user_id: int) -> list[BalanceDiscrepancy]:
        """List accounts whose stored balance differs from the transaction log."""

        expected = self.expected_balances(user_id=user_id)
        with self.session_factory() as session:
            accounts = session.exec(
                select(Account).where(Account.user_id == user_id).order_by(col(Account.id))
            ).all()
            problems = [
                BalanceDiscrepancy(a.id, a.name, a.balance, expected.get(a.id, ZERO))
                for a in accounts
                if a.balance != expected.get(a.id, ZERO)
            ]
        if problems:
            logger.warning(
                "Balance drift detected",
                extra={"user_id": user_id, "accounts": [p.account_id for p in problems]},
            )
        return problems

    def _validate(self, session: Session, txn: Transaction, user_id: int) -> BalanceEntry:
        """Check references and shape of a transaction snapshot; return its effect."""

        if txn.txn_type not in TRANSACTION_TYPES:
            raise LedgerValidationError(
                f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}",
                field="txn_type",
            )

        try:
            amount = to_money(txn.amount)
        except ValueError as exc:
            raise LedgerValidationError(
                "Amount must be a finite number", field="amount"
            ) from exc
        if amount <= 0:
            raise LedgerValidationError("Amount must be greater than zero", field="amount")
        txn.amount = amount

        if isinstance(txn.occurred_at, date) and not isinstance(txn.occurred_at, datetime):
            txn.occurred_at = datetime.combine(txn.occurred_at, datetime.min.time())
        if not isinstance(txn.occurred_at, datetime):
            raise LedgerValidationError("Date is required", field="occurred_at")

        if fetch_owned(session, Account, txn.account_id, user_id) is None:
            raise LedgerValidationError("Account not found", field="account_id")

        category = fetch_owned(session, Category, txn.category_id, user_id)
        if category is None:
            raise LedgerValidationError("Category not found", field="category_id")
        if category.category_type != txn.txn_type:
            raise LedgerValidationError(
                f"Category '{category.name}' is a {category.category_type} category",
                field="category_id",
            )

        if txn.txn_type == TRANSFER and txn.destination_account_id is not None:
            if fetch_owned(session, Account, txn.destination_account_id, user_id) is None:
                raise LedgerValidationError(
                    "Destination account not found", field="destination_account_id"
                )
        elif txn.txn_type != TRANSFER and txn.destination_account_id is not None:
            raise LedgerValidationError(
                "Only transfers have a destination account", field="destination_account_id"
            )

        return entry_for(txn)

    @staticmethod
    def _apply(session: Session, entry: BalanceEntry, user_id: int) -> None:
        """Add each leg's delta in SQL so the read-modify-write happens in the database."""

        for account_id, delta in entry.legs():
            result = session.execute(
                update(Account)
                .where(col(Account.id) == account_id)
                .where(col(Account.user_id) == user_id)
                .values(balance=Account.balance + delta)
            )
            if result.rowcount != 1:
                raise LedgerError(f"Account {account_id} missing while applying balance change")
        session.expire_all()
