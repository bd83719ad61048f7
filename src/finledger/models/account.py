"""Account model holding the maintained running balance."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlmodel import Field, SQLModel

from ..constants.categories import ACCOUNT_TYPES
from ..money import ZERO, Money

_TYPE_LIST = ", ".join(f"'{t}'" for t in ACCOUNT_TYPES)


class Account(SQLModel, table=True):
    """A user's bank, cash, e-wallet or investment account.

    ``balance`` is written only by the ledger service; it always equals
    ``opening_balance`` plus the signed effects of the transactions that
    reference the account.
    """

    __tablename__: ClassVar[str] = "account"
    __table_args__ = (
        CheckConstraint(f"account_type IN ({_TYPE_LIST})", name="ck_account_type"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=128)
    account_type: str = Field(default="bank", nullable=False, max_length=16, index=True)
    opening_balance: Decimal = Field(default=ZERO, sa_column=Column(Money, nullable=False))
    balance: Decimal = Field(default=ZERO, sa_column=Column(Money, nullable=False))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
