"""Ledger category definitions."""

from __future__ import annotations

from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from ..constants.categories import TRANSACTION_TYPES

_TYPE_LIST = ", ".join(f"'{t}'" for t in TRANSACTION_TYPES)


class Category(SQLModel, table=True):
    """Income, expense or transfer category owned by one user."""

    __tablename__: ClassVar[str] = "category"
    __table_args__ = (
        CheckConstraint(f"category_type IN ({_TYPE_LIST})", name="ck_category_type"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(index=True, nullable=False, max_length=64)
    category_type: str = Field(default="expense", nullable=False, max_length=16, index=True)
    icon: Optional[str] = Field(default=None, max_length=16)
