"""Pytest configuration and shared fixtures for finledger tests.

Every test gets its own SQLite file under ``tmp_path`` so nothing touches a
real ledger database.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from finledger.config import TestConfig
from finledger.context import create_app_context
from finledger.models import Account, Category, User


# =============================================================================
# Configuration / Database Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch) -> TestConfig:
    """Configuration pointing at a throwaway data dir and database file."""

    monkeypatch.setenv("FINLEDGER_DATA_DIR", str(tmp_path / "instance"))
    monkeypatch.setenv("FINLEDGER_DATABASE_URL", f"sqlite:///{tmp_path / 'ledger.db'}")
    monkeypatch.setenv("FINLEDGER_DEV_MODE", "false")
    return TestConfig()


@pytest.fixture
def app_ctx(config):
    """Fully wired application context; disposed after the test."""

    ctx = create_app_context(config)
    yield ctx
    ctx.close()


@pytest.fixture
def session_factory(app_ctx):
    return app_ctx.session_factory


@pytest.fixture
def ledger(app_ctx):
    return app_ctx.ledger


@pytest.fixture
def analytics(app_ctx):
    return app_ctx.analytics


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user(app_ctx) -> User:
    """Default ledger owner (no categories seeded)."""

    return app_ctx.user_repo.create(username="tester", password_hash="dummy-hash")


@pytest.fixture
def other_user(app_ctx) -> User:
    return app_ctx.user_repo.create(username="someone-else", password_hash="dummy-hash")


@pytest.fixture
def account_factory(app_ctx, user):
    """Factory for creating accounts owned by the default user."""

    def _create_account(
        name: str = "Test Account",
        account_type: str = "bank",
        balance: Decimal | int | str = 0,
        owner: User | None = None,
    ) -> Account:
        owner = owner or user
        return app_ctx.account_repo.create(
            user_id=owner.id, name=name, account_type=account_type, balance=balance
        )

    return _create_account


@pytest.fixture
def category_factory(app_ctx, user):
    """Factory for creating categories owned by the default user."""

    def _create_category(
        name: str = "Test Category",
        category_type: str = "expense",
        icon: str | None = None,
        owner: User | None = None,
    ) -> Category:
        owner = owner or user
        return app_ctx.category_repo.create(
            user_id=owner.id, name=name, category_type=category_type, icon=icon
        )

    return _create_category


@pytest.fixture
def txn_factory(ledger, user):
    """Record a transaction through the ledger service (balances included)."""

    def _create_txn(
        account: Account,
        category: Category,
        amount: Decimal | int | str,
        occurred_at: datetime | None = None,
        *,
        destination: Account | None = None,
        note: str | None = None,
    ):
        return ledger.create_transaction(
            user.id,
            account_id=account.id,
            category_id=category.id,
            txn_type=category.category_type,
            amount=amount,
            occurred_at=occurred_at or datetime.now(),
            note=note,
            destination_account_id=destination.id if destination else None,
        )

    return _create_txn


@pytest.fixture
def basic_ledger(account_factory, category_factory):
    """Two accounts plus one category of each type."""

    return {
        "bank": account_factory(name="Bank", account_type="bank"),
        "cash": account_factory(name="Wallet", account_type="cash"),
        "salary": category_factory(name="Salary", category_type="income"),
        "food": category_factory(name="Food & Dining", category_type="expense"),
        "move": category_factory(name="Bank to Cash", category_type="transfer"),
    }


# =============================================================================
# Helper Utilities
# =============================================================================


@pytest.fixture
def balance_of(app_ctx):
    """Return a callable that re-reads an account's stored balance."""

    def _balance(account: Account) -> Decimal:
        fresh = app_ctx.account_repo.get_by_id(account.id, user_id=account.user_id)
        assert fresh is not None
        return fresh.balance

    return _balance
