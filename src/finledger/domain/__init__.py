"""Pure domain helpers independent of storage."""

from .entries import BalanceEntry, SingleLeg, Transfer, entry_for

__all__ = ["BalanceEntry", "SingleLeg", "Transfer", "entry_for"]
