"""SQLModel table exports."""

from .account import Account
from .category import Category
from .transaction import Transaction
from .user import User

__all__ = [
    "Account",
    "Category",
    "Transaction",
    "User",
]
