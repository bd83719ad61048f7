"""SQLModel definitions for ledger transactions."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from ..constants.categories import TRANSACTION_TYPES
from ..money import Money

_TYPE_LIST = ", ".join(f"'{t}'" for t in TRANSACTION_TYPES)


class Transaction(SQLModel, table=True):
    """A single income, expense or transfer entry.

    Amounts are positive magnitudes; the direction comes from ``txn_type``.
    Rows are mutated only through ``LedgerService`` so account balances
    stay in step.
    """

    __tablename__: ClassVar[str] = "transaction"
    __table_args__ = (
        CheckConstraint(f"txn_type IN ({_TYPE_LIST})", name="ck_transaction_type"),
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        CheckConstraint(
            "(txn_type = 'transfer' AND destination_account_id IS NOT NULL"
            " AND destination_account_id <> account_id)"
            " OR (txn_type <> 'transfer' AND destination_account_id IS NULL)",
            name="ck_transaction_transfer_destination",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    account_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("account.id", ondelete="RESTRICT"), nullable=False, index=True
        )
    )
    category_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("category.id", ondelete="RESTRICT"), nullable=False, index=True
        )
    )
    txn_type: str = Field(nullable=False, max_length=16, index=True)
    amount: Decimal = Field(
        sa_column=Column(Money, nullable=False), description="Positive magnitude"
    )
    # naive wall-clock date of the entry
    occurred_at: datetime = Field(sa_column=Column(DateTime, nullable=False, index=True))
    note: Optional[str] = Field(default=None, max_length=255)
    destination_account_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("account.id", ondelete="RESTRICT"), nullable=True, index=True
        ),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
