"""Form parsing and validation for raw string input from the presentation layer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from .constants.categories import ACCOUNT_TYPES, TRANSACTION_TYPES, TRANSFER
from .money import ZERO, to_money


def _bind(keys: tuple[str, ...], data: Mapping[str, Any]) -> dict[str, str]:
    """Coerce incoming mapping values to stripped strings."""

    raw: dict[str, str] = {}
    for key in keys:
        value = data.get(key)
        if value is None:
            raw[key] = ""
        elif isinstance(value, str):
            raw[key] = value.strip()
        else:
            raw[key] = str(value).strip()
    return raw


@dataclass(slots=True)
class _Form:
    errors: dict[str, list[str]] = field(default_factory=dict, init=False)
    raw_data: dict[str, str] = field(default_factory=dict, init=False)

    def _add_error(self, field_name: str, message: str) -> None:
        """Accumulate validation errors for a specific field."""

        self.errors.setdefault(field_name, []).append(message)

    def _parse_id(self, field_name: str, label: str, *, required: bool = True) -> Optional[int]:
        raw = self.raw_data.get(field_name, "")
        if not raw:
            if required:
                self._add_error(field_name, f"{label} is required.")
            return None
        try:
            parsed = int(raw)
        except ValueError:
            self._add_error(field_name, f"{label} must be a whole number.")
            return None
        if parsed <= 0:
            self._add_error(field_name, f"{label} must be greater than zero.")
            return None
        return parsed

    def _parse_amount(self, field_name: str, label: str) -> Optional[Decimal]:
        """Parse a finite money value; returns ``None`` after recording an error."""

        try:
            return to_money(self.raw_data.get(field_name, ""))
        except ValueError:
            self._add_error(field_name, f"Enter a valid number for the {label}.")
            return None

    @property
    def first_error(self) -> Optional[str]:
        for messages in self.errors.values():
            if messages:
                return messages[0]
        return None


@dataclass(slots=True)
class TransactionForm(_Form):
    """Transaction entry input prior to validation."""

    KEYS = ("txn_type", "account_id", "category_id", "amount", "occurred_at", "note",
            "destination_account_id")

    txn_type: str = ""
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    amount: Optional[Decimal] = None
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None
    destination_account_id: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TransactionForm":
        """Create a form populated from raw input."""

        form = cls()
        form.raw_data = _bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        """Validate the bound data and populate typed attributes."""

        self.errors.clear()

        self.txn_type = self.raw_data.get("txn_type", "").lower()
        if self.txn_type not in TRANSACTION_TYPES:
            self._add_error("txn_type", "Choose income, expense or transfer.")

        self.account_id = self._parse_id("account_id", "Account")
        self.category_id = self._parse_id("category_id", "Category")

        amount_raw = self.raw_data.get("amount", "")
        self.amount = None
        if not amount_raw:
            self._add_error("amount", "Amount is required.")
        else:
            parsed_amount = self._parse_amount("amount", "amount")
            if parsed_amount is not None and parsed_amount <= 0:
                self._add_error("amount", "Amount must be greater than zero.")
            elif parsed_amount is not None:
                self.amount = parsed_amount

        occurred_at_raw = self.raw_data.get("occurred_at", "")
        self.occurred_at = None
        if not occurred_at_raw:
            self._add_error("occurred_at", "Date is required.")
        else:
            try:
                if len(occurred_at_raw) == 10:
                    self.occurred_at = datetime.strptime(occurred_at_raw, "%Y-%m-%d")
                else:
                    self.occurred_at = datetime.fromisoformat(occurred_at_raw)
            except ValueError:
                self._add_error("occurred_at", "Enter a valid date (YYYY-MM-DD).")

        note = self.raw_data.get("note", "")
        if len(note) > 255:
            self._add_error("note", "Note must be 255 characters or fewer.")
        self.note = note or None

        self.destination_account_id = None
        if self.txn_type == TRANSFER:
            self.destination_account_id = self._parse_id(
                "destination_account_id", "Destination account"
            )
            if (
                self.destination_account_id is not None
                and self.destination_account_id == self.account_id
            ):
                self._add_error(
                    "destination_account_id", "Destination must differ from the source account."
                )

        return not self.errors

    def to_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``LedgerService.create_transaction``."""

        return {
            "account_id": self.account_id,
            "category_id": self.category_id,
            "txn_type": self.txn_type,
            "amount": self.amount,
            "occurred_at": self.occurred_at,
            "note": self.note,
            "destination_account_id": self.destination_account_id,
        }


@dataclass(slots=True)
class AccountForm(_Form):
    """Account creation/edit input."""

    KEYS = ("name", "account_type", "balance")

    name: str = ""
    account_type: str = ""
    balance: Decimal = ZERO

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AccountForm":
        form = cls()
        form.raw_data = _bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        self.errors.clear()

        self.name = self.raw_data.get("name", "")
        if not self.name:
            self._add_error("name", "Account name is required.")
        elif len(self.name) > 128:
            self._add_error("name", "Account name must be 128 characters or fewer.")

        self.account_type = self.raw_data.get("account_type", "").lower() or "bank"
        if self.account_type not in ACCOUNT_TYPES:
            self._add_error("account_type", f"Account type must be one of {', '.join(ACCOUNT_TYPES)}.")

        # blank means a zero opening balance
        self.balance = ZERO
        if self.raw_data.get("balance", ""):
            parsed_balance = self._parse_amount("balance", "balance")
            if parsed_balance is not None:
                self.balance = parsed_balance

        return not self.errors


@dataclass(slots=True)
class CategoryForm(_Form):
    """Category creation/edit input."""

    KEYS = ("name", "category_type", "icon")

    name: str = ""
    category_type: str = ""
    icon: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CategoryForm":
        form = cls()
        form.raw_data = _bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        self.errors.clear()

        self.name = self.raw_data.get("name", "")
        if not self.name:
            self._add_error("name", "Category name is required.")
        elif len(self.name) > 64:
            self._add_error("name", "Category name must be 64 characters or fewer.")

        self.category_type = self.raw_data.get("category_type", "").lower()
        if self.category_type not in TRANSACTION_TYPES:
            self._add_error("category_type", "Choose income, expense or transfer.")

        self.icon = self.raw_data.get("icon", "") or None
        return not self.errors
