"""Command-line entry point driving the ledger core."""

from __future__ import annotations

import json
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click

from .config import BaseConfig
from .constants.categories import ACCOUNT_TYPES, TRANSACTION_TYPES
from .context import AppContext, create_app_context
from .errors import run_operation
from .formatting import format_currency, format_runway
from .forms import AccountForm, TransactionForm
from .logging_config import setup_logging
from .money import as_number
from .services.export import EXPORT_FORMATS, export_filename, write_export


def _resolve_user_id(app: AppContext, username: str) -> int:
    user = app.user_repo.get_by_username(username)
    if user is None or user.id is None:
        raise click.ClickException(f"User not found: {username}")
    return user.id


def _json_default(value):
    if isinstance(value, Decimal):
        return as_number(value)
    return str(value)


def _fail_with(result) -> None:
    details = [f"{name}: {msg}" for name, msgs in result.errors.items() for msg in msgs]
    message = result.error or "Operation failed"
    if len(details) > 1:
        message = "; ".join(details)
    raise click.ClickException(message)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Personal finance ledger."""

    config = BaseConfig()
    setup_logging(config)
    app = create_app_context(config)
    ctx.obj = app
    ctx.call_on_close(app.close)


@cli.command("register")
@click.argument("username")
@click.password_option()
@click.pass_obj
def register(app: AppContext, username: str, password: str) -> None:
    """Create a user and seed the default categories."""

    result = app.auth.register(username, password)
    if not result.success:
        raise click.ClickException(result.error or "Registration failed")
    click.echo(f"Registered {result.user.username} (id {result.user.id})")


@cli.command("seed-categories")
@click.option("--user", "username", required=True)
@click.pass_obj
def seed_categories(app: AppContext, username: str) -> None:
    """Insert the default categories if the user has none."""

    inserted = app.category_repo.seed_defaults(user_id=_resolve_user_id(app, username))
    click.echo(f"Inserted {inserted} categories")


@cli.command("add-account")
@click.option("--user", "username", required=True)
@click.option("--name", required=True)
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), default="bank")
@click.option("--balance", default="0", help="Opening balance")
@click.pass_obj
def add_account(app: AppContext, username: str, name: str, account_type: str, balance: str) -> None:
    """Open an account."""

    user_id = _resolve_user_id(app, username)
    form = AccountForm.from_mapping({"name": name, "account_type": account_type, "balance": balance})
    if not form.validate():
        raise click.ClickException(form.first_error or "Invalid account")
    result = run_operation(
        app.account_repo.create,
        user_id=user_id,
        name=form.name,
        account_type=form.account_type,
        balance=form.balance,
    )
    if not result.success:
        _fail_with(result)
    click.echo(f"Account {result.value.id}: {result.value.name}")


@cli.command("add-transaction")
@click.option("--user", "username", required=True)
@click.option("--type", "txn_type", type=click.Choice(TRANSACTION_TYPES), required=True)
@click.option("--account", "account_id", required=True)
@click.option("--category", "category_id", required=True)
@click.option("--amount", required=True)
@click.option("--date", "occurred_at", required=True, help="YYYY-MM-DD")
@click.option("--note", default="")
@click.option("--to", "destination_account_id", default="", help="Destination account for transfers")
@click.pass_obj
def add_transaction(app: AppContext, username: str, **fields: str) -> None:
    """Record a transaction and update balances."""

    user_id = _resolve_user_id(app, username)
    form = TransactionForm.from_mapping(fields)
    if not form.validate():
        raise click.ClickException(form.first_error or "Invalid transaction")
    result = run_operation(app.ledger.create_transaction, user_id, **form.to_kwargs())
    if not result.success:
        _fail_with(result)
    click.echo(f"Transaction {result.value.id} recorded")


@cli.command("delete-transaction")
@click.option("--user", "username", required=True)
@click.argument("transaction_id", type=int)
@click.pass_obj
def delete_transaction(app: AppContext, username: str, transaction_id: int) -> None:
    """Remove a transaction and reverse its balance effect."""

    result = run_operation(
        app.ledger.delete_transaction, transaction_id, user_id=_resolve_user_id(app, username)
    )
    if not result.success:
        _fail_with(result)
    click.echo("Deleted" if result.value else "Nothing to delete")


@cli.command("export")
@click.option("--user", "username", required=True)
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default="json")
@click.option("--output", type=click.Path(path_type=Path), default=None)
@click.pass_obj
def export(app: AppContext, username: str, fmt: str, output: Optional[Path]) -> None:
    """Write the ledger as JSON or CSV."""

    content = app.exporter.export(_resolve_user_id(app, username), fmt)
    path = write_export(content, output or Path(export_filename(fmt)))
    click.echo(f"Export written: {path}")


@cli.command("report")
@click.option("--user", "username", required=True)
@click.option("--months", default=12, show_default=True)
@click.pass_obj
def report(app: AppContext, username: str, months: int) -> None:
    """Print cashflow, forecast, anomalies, insights and health as JSON."""

    user_id = _resolve_user_id(app, username)
    analytics = app.analytics
    health = analytics.financial_health(user_id)
    payload = {
        "summary": asdict(analytics.dashboard_summary(user_id)),
        "cashflow": [asdict(point) for point in analytics.monthly_cashflow(user_id, months)],
        "forecast": asdict(analytics.cashflow_forecast(user_id)),
        "anomalies": [asdict(a) for a in analytics.detect_anomalies(user_id)],
        "insights": asdict(analytics.spending_insights(user_id)),
        "health": asdict(health),
        "display": {
            "total_balance": format_currency(health.total_balance),
            "burn_rate": format_currency(health.burn_rate),
            "runway": format_runway(health.runway_months),
        },
    }
    click.echo(json.dumps(payload, indent=2, default=_json_default, ensure_ascii=False))


@cli.command("verify")
@click.option("--user", "username", required=True)
@click.pass_obj
def verify(app: AppContext, username: str) -> None:
    """Check stored balances against the transaction log."""

    problems = app.ledger.verify_balances(user_id=_resolve_user_id(app, username))
    if not problems:
        click.echo("All balances consistent")
        return
    for problem in problems:
        click.echo(
            f"{problem.name}: recorded {problem.recorded} expected {problem.expected}", err=True
        )
    raise click.exceptions.Exit(1)


def main() -> None:  # pragma: no cover - console script shim
    cli()
