"""Read-only analytics over a user's ledger.

Every query is scoped to one user, never mutates, and accepts an optional
``now`` so results are reproducible. Money totals are exact ``Decimal`` sums;
averages, ratios and percentages are floats, and rounding happens only on
the figures each result reports as rounded.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from statistics import fmean, pstdev
from typing import Optional

from ..config import BaseConfig
from ..constants.categories import DAY_NAMES, EXPENSE, INCOME, TRANSACTION_TYPES
from ..errors import LedgerValidationError
from ..infra.repositories.account import SQLModelAccountRepository
from ..infra.repositories.category import SQLModelCategoryRepository
from ..infra.repositories.transaction import SQLModelTransactionRepository
from ..models.category import Category
from ..money import ZERO
from .periods import month_bounds, month_label, month_start, shift_months

UNKNOWN_CATEGORY = "Unknown"

FORECAST_HISTORY_MONTHS = 6
FORECAST_WINDOW = 3
FORECAST_MIN_MONTHS = 3
HIGH_CONFIDENCE_CV = 0.2
LOW_CONFIDENCE_CV = 0.5

ANOMALY_MIN_SAMPLES = 2
TOP_CATEGORY_LIMIT = 5


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from negative infinity, like ``Math.round``."""

    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class MonthlyCashflow:
    month: str
    start: datetime
    income: Decimal
    expense: Decimal
    net: Decimal


@dataclass(frozen=True)
class CategoryBreakdown:
    category_id: int
    category_name: str
    icon: Optional[str]
    amount: Decimal
    percentage: float


@dataclass(frozen=True)
class CashflowForecast:
    predicted_income: float
    predicted_expense: float
    predicted_net: float
    confidence: str  # low | medium | high


@dataclass(frozen=True)
class SpendingAnomaly:
    transaction_id: int
    category_name: str
    amount: Decimal
    average: float
    ratio: float
    date: datetime


@dataclass(frozen=True)
class TopCategory:
    name: str
    amount: Decimal
    icon: Optional[str] = None


@dataclass(frozen=True)
class DaySpending:
    day: str
    amount: Decimal


@dataclass(frozen=True)
class MonthOverMonth:
    change: float
    direction: str  # up | down | stable


@dataclass(frozen=True)
class LargestTransaction:
    transaction_id: int
    amount: Decimal
    category: str
    date: datetime


@dataclass(frozen=True)
class SpendingInsight:
    top_categories: list[TopCategory]
    day_of_week_pattern: list[DaySpending]
    month_over_month: MonthOverMonth
    largest_transaction: Optional[LargestTransaction]


@dataclass(frozen=True)
class FinancialHealth:
    burn_rate: float
    runway_months: float
    total_balance: Decimal
    spending_trend: str  # increasing | decreasing | stable
    trend_percentage: float


@dataclass(frozen=True)
class DashboardSummary:
    total_balance: Decimal
    month_income: Decimal
    month_expense: Decimal
    month_net: Decimal


def _as_range_start(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _as_range_end(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max)


def _percent_change(current: Decimal, previous: Decimal) -> float:
    if previous > 0:
        return float(current - previous) / float(previous) * 100
    return 0.0


class AnalyticsService:
    """Cashflow, breakdown, forecast, anomaly, insight and health queries."""

    def __init__(
        self,
        transaction_repo: SQLModelTransactionRepository,
        category_repo: SQLModelCategoryRepository,
        account_repo: SQLModelAccountRepository,
        config: BaseConfig,
    ):
        self.transaction_repo = transaction_repo
        self.category_repo = category_repo
        self.account_repo = account_repo
        self.config = config

    def _categories(self, user_id: int) -> dict[int, Category]:
        return {c.id: c for c in self.category_repo.list_all(user_id=user_id)}

    def monthly_cashflow(
        self, user_id: int, months: int = 12, *, now: Optional[datetime] = None
    ) -> list[MonthlyCashflow]:
        """Income/expense/net for each of the last ``months`` calendar months, oldest first."""

        if months <= 0:
            return []
        now = now or datetime.now()
        window_start, _ = month_bounds(now, -(months - 1))
        _, window_end = month_bounds(now, 0)

        totals: dict[datetime, dict[str, Decimal]] = defaultdict(
            lambda: {INCOME: ZERO, EXPENSE: ZERO}
        )
        for txn in self.transaction_repo.search(
            user_id=user_id, start_date=window_start, before=window_end
        ):
            if txn.txn_type in (INCOME, EXPENSE):
                totals[month_start(txn.occurred_at)][txn.txn_type] += txn.amount

        series = []
        for offset in range(months - 1, -1, -1):
            start, _ = month_bounds(now, -offset)
            bucket = totals.get(start, {INCOME: ZERO, EXPENSE: ZERO})
            income, expense = bucket[INCOME], bucket[EXPENSE]
            series.append(
                MonthlyCashflow(
                    month=month_label(start),
                    start=start,
                    income=income,
                    expense=expense,
                    net=income - expense,
                )
            )
        return series

    def category_breakdown(
        self,
        user_id: int,
        txn_type: str,
        start: datetime | date,
        end: datetime | date,
    ) -> list[CategoryBreakdown]:
        """Per-category totals of one transaction type within ``[start, end]``."""

        if txn_type not in TRANSACTION_TYPES:
            raise LedgerValidationError(
                f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}",
                field="txn_type",
            )
        transactions = self.transaction_repo.search(
            user_id=user_id,
            txn_type=txn_type,
            start_date=_as_range_start(start),
            end_date=_as_range_end(end),
        )
        categories = self._categories(user_id)

        amounts: dict[int, Decimal] = {}
        total = ZERO
        for txn in transactions:
            amounts[txn.category_id] = amounts.get(txn.category_id, ZERO) + txn.amount
            total += txn.amount

        breakdown = []
        for category_id, amount in amounts.items():
            category = categories.get(category_id)
            breakdown.append(
                CategoryBreakdown(
                    category_id=category_id,
                    category_name=category.name if category else UNKNOWN_CATEGORY,
                    icon=category.icon if category else None,
                    amount=amount,
                    percentage=float(amount) / float(total) * 100 if total > 0 else 0.0,
                )
            )
        breakdown.sort(key=lambda item: item.amount, reverse=True)
        return breakdown

    def cashflow_forecast(
        self, user_id: int, *, now: Optional[datetime] = None
    ) -> CashflowForecast:
        """Three-month moving-average forecast with a volatility-based confidence."""

        history = self.monthly_cashflow(user_id, FORECAST_HISTORY_MONTHS, now=now)
        active_months = sum(1 for m in history if m.income or m.expense)
        if active_months < FORECAST_MIN_MONTHS:
            return CashflowForecast(0, 0, 0, "low")

        window = history[-FORECAST_WINDOW:]
        incomes = [float(m.income) for m in window]
        predicted_income = fmean(incomes)
        predicted_expense = fmean(float(m.expense) for m in window)

        cv = pstdev(incomes) / predicted_income if predicted_income > 0 else 1.0
        if cv < HIGH_CONFIDENCE_CV:
            confidence = "high"
        elif cv > LOW_CONFIDENCE_CV:
            confidence = "low"
        else:
            confidence = "medium"

        return CashflowForecast(
            predicted_income=round_half_up(predicted_income),
            predicted_expense=round_half_up(predicted_expense),
            predicted_net=round_half_up(predicted_income - predicted_expense),
            confidence=confidence,
        )

    def detect_anomalies(
        self, user_id: int, *, now: Optional[datetime] = None
    ) -> list[SpendingAnomaly]:
        """Flag last-month expenses at or above the threshold times their category average.

        The baseline comes from expenses dated in ``[now - 3 months, now - 1 month)``;
        categories with fewer than two baseline samples are never flagged.
        """

        now = now or datetime.now()
        three_months_ago = shift_months(now, -3)
        one_month_ago = shift_months(now, -1)

        baseline: dict[int, list[Decimal]] = defaultdict(list)
        for txn in self.transaction_repo.search(
            user_id=user_id, txn_type=EXPENSE, start_date=three_months_ago, before=one_month_ago
        ):
            baseline[txn.category_id].append(txn.amount)

        recent = self.transaction_repo.search(
            user_id=user_id, txn_type=EXPENSE, start_date=one_month_ago
        )
        categories = self._categories(user_id)
        threshold = self.config.ANOMALY_THRESHOLD

        anomalies = []
        for txn in recent:
            samples = baseline.get(txn.category_id)
            if not samples or len(samples) < ANOMALY_MIN_SAMPLES:
                continue
            average = float(sum(samples, ZERO)) / len(samples)
            ratio = float(txn.amount) / average
            if ratio >= threshold:
                category = categories.get(txn.category_id)
                anomalies.append(
                    SpendingAnomaly(
                        transaction_id=txn.id,
                        category_name=category.name if category else UNKNOWN_CATEGORY,
                        amount=txn.amount,
                        average=average,
                        ratio=ratio,
                        date=txn.occurred_at,
                    )
                )
        anomalies.sort(key=lambda a: a.ratio, reverse=True)
        return anomalies

    def spending_insights(
        self, user_id: int, *, now: Optional[datetime] = None
    ) -> SpendingInsight:
        """Top categories, weekday pattern, month-over-month change and largest expense."""

        now = now or datetime.now()
        expenses = self.transaction_repo.search(
            user_id=user_id, txn_type=EXPENSE, start_date=shift_months(now, -3)
        )
        categories = self._categories(user_id)

        def _name(category_id: int) -> str:
            category = categories.get(category_id)
            return category.name if category else UNKNOWN_CATEGORY

        per_category: dict[int, Decimal] = {}
        day_totals = [ZERO] * 7
        for txn in expenses:
            per_category[txn.category_id] = per_category.get(txn.category_id, ZERO) + txn.amount
            # weekday() is Monday-first; buckets are Sunday-first
            day_totals[(txn.occurred_at.weekday() + 1) % 7] += txn.amount

        ranked = sorted(per_category.items(), key=lambda item: item[1], reverse=True)
        top_categories = [
            TopCategory(
                name=_name(category_id),
                amount=amount,
                icon=categories[category_id].icon if category_id in categories else None,
            )
            for category_id, amount in ranked[:TOP_CATEGORY_LIMIT]
        ]

        this_month_start, _ = month_bounds(now, 0)
        last_month_start, _ = month_bounds(now, -1)
        this_month = sum((t.amount for t in expenses if t.occurred_at >= this_month_start), ZERO)
        last_month = sum(
            (t.amount for t in expenses if last_month_start <= t.occurred_at < this_month_start),
            ZERO,
        )
        change = _percent_change(this_month, last_month)
        threshold = self.config.MOM_THRESHOLD
        if change > threshold:
            direction = "up"
        elif change < -threshold:
            direction = "down"
        else:
            direction = "stable"

        largest = max(expenses, key=lambda t: t.amount, default=None)

        return SpendingInsight(
            top_categories=top_categories,
            day_of_week_pattern=[DaySpending(day, day_totals[i]) for i, day in enumerate(DAY_NAMES)],
            month_over_month=MonthOverMonth(change=abs(change), direction=direction),
            largest_transaction=(
                LargestTransaction(
                    transaction_id=largest.id,
                    amount=largest.amount,
                    category=_name(largest.category_id),
                    date=largest.occurred_at,
                )
                if largest is not None
                else None
            ),
        )

    def financial_health(
        self, user_id: int, *, now: Optional[datetime] = None
    ) -> FinancialHealth:
        """Burn rate, runway and spending trend."""

        now = now or datetime.now()
        total_balance = self.account_repo.total_balance(user_id=user_id)

        window_start, _ = month_bounds(now, -2)
        _, window_end = month_bounds(now, 0)
        expenses = self.transaction_repo.search(
            user_id=user_id, txn_type=EXPENSE, start_date=window_start, before=window_end
        )

        # [current month, month -1, month -2]
        monthly = []
        for offset in (0, -1, -2):
            start, end = month_bounds(now, offset)
            in_month = (t.amount for t in expenses if start <= t.occurred_at < end)
            monthly.append(sum(in_month, ZERO))

        burn_rate = float(sum(monthly, ZERO)) / 3
        if burn_rate > 0:
            runway = float(total_balance) / burn_rate
        else:
            runway = self.config.RUNWAY_SENTINEL

        trend = _percent_change(monthly[1], monthly[2])
        threshold = self.config.TREND_THRESHOLD
        if trend > threshold:
            spending_trend = "increasing"
        elif trend < -threshold:
            spending_trend = "decreasing"
        else:
            spending_trend = "stable"

        return FinancialHealth(
            burn_rate=round_half_up(burn_rate),
            runway_months=round_half_up(runway, 1),
            total_balance=total_balance,
            spending_trend=spending_trend,
            trend_percentage=abs(round_half_up(trend)),
        )

    def dashboard_summary(
        self, user_id: int, *, now: Optional[datetime] = None
    ) -> DashboardSummary:
        """Total balance plus the current month's income, expense and net."""

        current = self.monthly_cashflow(user_id, 1, now=now)[0]
        return DashboardSummary(
            total_balance=self.account_repo.total_balance(user_id=user_id),
            month_income=current.income,
            month_expense=current.expense,
            month_net=current.net,
        )
