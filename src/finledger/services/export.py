"""JSON and CSV exports of a user's ledger."""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional

from ..errors import LedgerValidationError
from ..infra.repositories.account import SQLModelAccountRepository
from ..infra.repositories.category import SQLModelCategoryRepository
from ..infra.repositories.transaction import SQLModelTransactionRepository
from ..logging_config import get_logger
from ..models import Account, Category, Transaction
from ..money import as_number, to_money

logger = get_logger("services.export")

CSV_HEADERS = ["Date", "Type", "Category", "Account", "Amount", "Note"]
EXPORT_FORMATS = ("json", "csv")


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _format_amount(amount: Decimal) -> str:
    """Plain decimal text without trailing zeros, e.g. ``12.5`` or ``1000000``."""

    return format(to_money(amount).normalize(), "f")


def account_record(account: Account) -> dict[str, Any]:
    return {
        "id": account.id,
        "userId": account.user_id,
        "name": account.name,
        "type": account.account_type,
        "balance": as_number(account.balance),
        "openingBalance": as_number(account.opening_balance),
        "createdAt": _serialize_value(account.created_at),
    }


def category_record(category: Category) -> dict[str, Any]:
    record = {
        "id": category.id,
        "userId": category.user_id,
        "name": category.name,
        "type": category.category_type,
    }
    if category.icon:
        record["icon"] = category.icon
    return record


def transaction_record(txn: Transaction) -> dict[str, Any]:
    record = {
        "id": txn.id,
        "userId": txn.user_id,
        "accountId": txn.account_id,
        "categoryId": txn.category_id,
        "type": txn.txn_type,
        "amount": as_number(txn.amount),
        "date": _serialize_value(txn.occurred_at),
        "createdAt": _serialize_value(txn.created_at),
    }
    if txn.note:
        record["note"] = txn.note
    if txn.destination_account_id is not None:
        record["destinationAccountId"] = txn.destination_account_id
    return record


def render_json(
    *,
    accounts: Iterable[Account],
    categories: Iterable[Category],
    transactions: Iterable[Transaction],
    exported_at: datetime,
) -> str:
    """Pretty-print the full ledger with its export timestamp."""

    payload = {
        "exportDate": exported_at.isoformat(),
        "accounts": [account_record(a) for a in accounts],
        "categories": [category_record(c) for c in categories],
        "transactions": [transaction_record(t) for t in transactions],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def render_csv(
    *,
    accounts: Iterable[Account],
    categories: Iterable[Category],
    transactions: Iterable[Transaction],
) -> str:
    """One fully quoted row per transaction under a fixed header.

    Rows end in a bare line feed and the last one has none. Names resolve to
    empty strings when the reference is missing. The transfer destination is
    not part of the CSV layout; use the JSON export for it.
    """

    account_names = {a.id: a.name for a in accounts}
    category_names = {c.id: c.name for c in categories}

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for txn in transactions:
        writer.writerow(
            [
                txn.occurred_at.strftime("%Y-%m-%d"),
                txn.txn_type,
                category_names.get(txn.category_id, ""),
                account_names.get(txn.account_id, ""),
                _format_amount(txn.amount),
                txn.note or "",
            ]
        )
    return buffer.getvalue().removesuffix("\n")


def export_filename(fmt: str, today: Optional[date] = None) -> str:
    """Download name for an export, e.g. ``finance-export-2024-05-01.csv``."""

    today = today or date.today()
    return f"finance-export-{today.isoformat()}.{fmt}"


def write_export(content: str, output_path: Path) -> Path:
    """Write an export blob to disk, creating parent directories."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    return output_path


class ExportService:
    """Produce JSON/CSV text blobs for the export consumer."""

    def __init__(
        self,
        account_repo: SQLModelAccountRepository,
        category_repo: SQLModelCategoryRepository,
        transaction_repo: SQLModelTransactionRepository,
    ):
        self.account_repo = account_repo
        self.category_repo = category_repo
        self.transaction_repo = transaction_repo

    def export_json(self, user_id: int, *, now: Optional[datetime] = None) -> str:
        content = render_json(
            accounts=self.account_repo.list_all(user_id=user_id),
            categories=self.category_repo.list_all(user_id=user_id),
            transactions=self.transaction_repo.list_all(user_id=user_id),
            exported_at=now or datetime.now(timezone.utc),
        )
        logger.info("JSON export rendered", extra={"user_id": user_id, "bytes": len(content)})
        return content

    def export_csv(self, user_id: int) -> str:
        transactions = self.transaction_repo.list_all(user_id=user_id)
        content = render_csv(
            accounts=self.account_repo.list_all(user_id=user_id),
            categories=self.category_repo.list_all(user_id=user_id),
            transactions=transactions,
        )
        logger.info("CSV export rendered", extra={"user_id": user_id, "rows": len(transactions)})
        return content

    def export(self, user_id: int, fmt: str) -> str:
        if fmt == "json":
            return self.export_json(user_id)
        if fmt == "csv":
            return self.export_csv(user_id)
        raise LedgerValidationError(f"Unsupported export format: {fmt}", field="format")
