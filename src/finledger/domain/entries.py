"""Balance effects of transactions as a tagged variant.

An income or expense touches one account (``SingleLeg``); a transfer always
touches two (``Transfer``). A transfer without a distinct destination cannot
be built, so the second leg is never undefined.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, Optional, Protocol, Union

from ..constants.categories import EXPENSE, INCOME, TRANSACTION_TYPES, TRANSFER
from ..errors import LedgerValidationError


class TransactionLike(Protocol):
    txn_type: str
    amount: Decimal
    account_id: int
    destination_account_id: Optional[int]


@dataclass(frozen=True, slots=True)
class SingleLeg:
    """Income or expense: one signed delta on one account."""

    account_id: int
    delta: Decimal

    def legs(self) -> Iterator[tuple[int, Decimal]]:
        yield self.account_id, self.delta

    def inverse(self) -> "SingleLeg":
        return SingleLeg(self.account_id, -self.delta)


@dataclass(frozen=True, slots=True)
class Transfer:
    """Money leaving ``source_id`` and arriving at ``destination_id``."""

    source_id: int
    destination_id: int
    amount: Decimal

    def __post_init__(self) -> None:
        if self.source_id == self.destination_id:
            raise LedgerValidationError(
                "Destination account must differ from the source account",
                field="destination_account_id",
            )

    def legs(self) -> Iterator[tuple[int, Decimal]]:
        yield self.source_id, -self.amount
        yield self.destination_id, self.amount

    def inverse(self) -> "Transfer":
        return Transfer(self.source_id, self.destination_id, -self.amount)


BalanceEntry = Union[SingleLeg, Transfer]


def entry_for(txn: TransactionLike) -> BalanceEntry:
    """Build the balance effect for a transaction snapshot."""

    if txn.txn_type == INCOME:
        return SingleLeg(txn.account_id, txn.amount)
    if txn.txn_type == EXPENSE:
        return SingleLeg(txn.account_id, -txn.amount)
    if txn.txn_type == TRANSFER:
        if txn.destination_account_id is None:
            raise LedgerValidationError(
                "Transfers require a destination account", field="destination_account_id"
            )
        return Transfer(txn.account_id, txn.destination_account_id, txn.amount)
    raise LedgerValidationError(
        f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}", field="txn_type"
    )
