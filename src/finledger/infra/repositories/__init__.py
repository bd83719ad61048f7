"""SQLModel repository implementations."""

from .account import SQLModelAccountRepository
from .category import SQLModelCategoryRepository
from .transaction import SQLModelTransactionRepository
from .user import SQLModelUserRepository, normalize_username

__all__ = [
    "SQLModelAccountRepository",
    "SQLModelCategoryRepository",
    "SQLModelTransactionRepository",
    "SQLModelUserRepository",
    "normalize_username",
]
