"""Tests for the analytics queries with a pinned clock."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from finledger.errors import LedgerValidationError
from finledger.services.analytics import round_half_up

NOW = datetime(2024, 6, 15, 12, 0)


@pytest.fixture
def spending(basic_ledger, category_factory):
    """basic_ledger plus a second expense category."""

    return {**basic_ledger, "transport": category_factory(name="Transport", category_type="expense", icon="bus")}


# =============================================================================
# Helpers
# =============================================================================


@pytest.mark.parametrize(
    "value, digits, expected",
    [(2.5, 0, 3), (-2.5, 0, -2), (2.4, 0, 2), (1.25, 1, 1.3), (46.96, 1, 47.0)],
)
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == pytest.approx(expected)


# =============================================================================
# Cashflow & breakdown
# =============================================================================


def test_monthly_cashflow_buckets_oldest_first(analytics, user, basic_ledger, txn_factory):
    bank, cash = basic_ledger["bank"], basic_ledger["cash"]
    txn_factory(bank, basic_ledger["salary"], 1000, datetime(2024, 4, 3))
    txn_factory(bank, basic_ledger["food"], 250, datetime(2024, 4, 30, 23, 59))
    txn_factory(bank, basic_ledger["food"], 80, datetime(2024, 6, 1))
    txn_factory(bank, basic_ledger["move"], 500, datetime(2024, 6, 2), destination=cash)
    txn_factory(bank, basic_ledger["salary"], 999, datetime(2024, 3, 31))

    series = analytics.monthly_cashflow(user.id, 3, now=NOW)

    assert [point.month for point in series] == ["Apr 2024", "May 2024", "Jun 2024"]
    april, may, june = series
    assert (april.income, april.expense, april.net) == (1000, 250, 750)
    assert (may.income, may.expense, may.net) == (0, 0, 0)
    assert (june.income, june.expense, june.net) == (0, 80, -80)


def test_monthly_cashflow_sums_cents_exactly(analytics, user, basic_ledger, txn_factory):
    bank = basic_ledger["bank"]
    for day in (3, 4, 5):
        txn_factory(bank, basic_ledger["food"], "0.1", datetime(2024, 6, day))
    txn_factory(bank, basic_ledger["salary"], "0.2", datetime(2024, 6, 6))

    june = analytics.monthly_cashflow(user.id, 1, now=NOW)[0]

    assert june.expense == Decimal("0.3")
    assert june.net == Decimal("-0.1")
    assert analytics.dashboard_summary(user.id, now=NOW).total_balance == Decimal("-0.1")


def test_monthly_cashflow_zero_months_is_empty(analytics, user):
    assert analytics.monthly_cashflow(user.id, 0, now=NOW) == []


def test_monthly_cashflow_crosses_year_boundary(analytics, user):
    series = analytics.monthly_cashflow(user.id, 2, now=datetime(2024, 1, 10))
    assert [point.month for point in series] == ["Dec 2023", "Jan 2024"]


def test_category_breakdown_sorted_with_percentages(analytics, user, spending, txn_factory):
    bank = spending["bank"]
    txn_factory(bank, spending["food"], 300, datetime(2024, 5, 2))
    txn_factory(bank, spending["food"], 300, datetime(2024, 5, 31, 18, 30))
    txn_factory(bank, spending["transport"], 200, datetime(2024, 5, 20))
    txn_factory(bank, spending["transport"], 999, datetime(2024, 6, 1))

    breakdown = analytics.category_breakdown(user.id, "expense", date(2024, 5, 1), date(2024, 5, 31))

    assert [(item.category_name, item.amount) for item in breakdown] == [
        ("Food & Dining", 600),
        ("Transport", 200),
    ]
    assert [item.percentage for item in breakdown] == [75, 25]
    assert sum(item.percentage for item in breakdown) == pytest.approx(100)
    assert breakdown[1].icon == "bus"


def test_category_breakdown_empty_range(analytics, user):
    assert analytics.category_breakdown(user.id, "income", date(2024, 1, 1), date(2024, 1, 31)) == []


def test_category_breakdown_rejects_unknown_type(analytics, user):
    with pytest.raises(LedgerValidationError):
        analytics.category_breakdown(user.id, "refund", date(2024, 1, 1), date(2024, 1, 31))


# =============================================================================
# Forecast
# =============================================================================


def _monthly_incomes(txn_factory, account, category, amounts):
    for month, amount in zip((4, 5, 6), amounts):
        txn_factory(account, category, amount, datetime(2024, month, 5))


def test_forecast_needs_three_active_months(analytics, user, basic_ledger, txn_factory):
    txn_factory(basic_ledger["bank"], basic_ledger["salary"], 1000, datetime(2024, 5, 5))
    txn_factory(basic_ledger["bank"], basic_ledger["salary"], 1000, datetime(2024, 6, 5))

    forecast = analytics.cashflow_forecast(user.id, now=NOW)

    assert (forecast.predicted_income, forecast.predicted_expense, forecast.predicted_net) == (0, 0, 0)
    assert forecast.confidence == "low"


def test_forecast_stable_income_is_high_confidence(analytics, user, basic_ledger, txn_factory):
    bank = basic_ledger["bank"]
    _monthly_incomes(txn_factory, bank, basic_ledger["salary"], [1000, 1000, 1000])
    txn_factory(bank, basic_ledger["food"], 300, datetime(2024, 4, 10))
    txn_factory(bank, basic_ledger["food"], 600, datetime(2024, 5, 10))

    forecast = analytics.cashflow_forecast(user.id, now=NOW)

    assert forecast.predicted_income == 1000
    assert forecast.predicted_expense == 300
    assert forecast.predicted_net == 700
    assert forecast.confidence == "high"


@pytest.mark.parametrize(
    "incomes, confidence, predicted",
    [([1000, 1500, 2000], "medium", 1500), ([100, 100, 1000], "low", 400)],
)
def test_forecast_confidence_tracks_volatility(
    analytics, user, basic_ledger, txn_factory, incomes, confidence, predicted
):
    _monthly_incomes(txn_factory, basic_ledger["bank"], basic_ledger["salary"], incomes)

    forecast = analytics.cashflow_forecast(user.id, now=NOW)

    assert forecast.confidence == confidence
    assert forecast.predicted_income == predicted


# =============================================================================
# Anomalies
# =============================================================================


def test_detect_anomalies_flags_large_recent_expenses(analytics, user, spending, txn_factory):
    bank = spending["bank"]
    txn_factory(bank, spending["food"], 100, datetime(2024, 4, 1))
    txn_factory(bank, spending["food"], 100, datetime(2024, 4, 20))
    flagged = txn_factory(bank, spending["food"], 250, datetime(2024, 6, 2))
    txn_factory(bank, spending["food"], 150, datetime(2024, 6, 3))
    # single baseline sample: never flagged
    txn_factory(bank, spending["transport"], 50, datetime(2024, 4, 5))
    txn_factory(bank, spending["transport"], 500, datetime(2024, 6, 4))

    anomalies = analytics.detect_anomalies(user.id, now=NOW)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.transaction_id == flagged.id
    assert anomaly.category_name == "Food & Dining"
    assert anomaly.average == 100
    assert anomaly.ratio == pytest.approx(2.5)


def test_detect_anomalies_respects_configured_threshold(analytics, user, spending, txn_factory):
    bank = spending["bank"]
    txn_factory(bank, spending["food"], 100, datetime(2024, 4, 1))
    txn_factory(bank, spending["food"], 100, datetime(2024, 4, 20))
    txn_factory(bank, spending["food"], 150, datetime(2024, 6, 3))

    analytics.config.ANOMALY_THRESHOLD = 1.5

    assert [a.amount for a in analytics.detect_anomalies(user.id, now=NOW)] == [150]


def test_detect_anomalies_without_history(analytics, user):
    assert analytics.detect_anomalies(user.id, now=NOW) == []


# =============================================================================
# Insights
# =============================================================================


def test_spending_insights(analytics, user, spending, txn_factory):
    bank = spending["bank"]
    largest = txn_factory(bank, spending["food"], 300, datetime(2024, 6, 2))  # Sunday
    txn_factory(bank, spending["transport"], 50, datetime(2024, 6, 3))  # Monday
    txn_factory(bank, spending["food"], 200, datetime(2024, 5, 10))  # Friday
    txn_factory(bank, spending["food"], 5000, datetime(2024, 1, 10))  # outside window

    insight = analytics.spending_insights(user.id, now=NOW)

    assert [(c.name, c.amount) for c in insight.top_categories] == [
        ("Food & Dining", 500),
        ("Transport", 50),
    ]
    pattern = {d.day: d.amount for d in insight.day_of_week_pattern}
    assert [d.day for d in insight.day_of_week_pattern] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert pattern == {"Sun": 300, "Mon": 50, "Tue": 0, "Wed": 0, "Thu": 0, "Fri": 200, "Sat": 0}
    assert insight.month_over_month.change == pytest.approx(75)
    assert insight.month_over_month.direction == "up"
    assert insight.largest_transaction.transaction_id == largest.id
    assert insight.largest_transaction.category == "Food & Dining"


def test_spending_insights_limits_top_categories(analytics, user, basic_ledger, category_factory, txn_factory):
    for index in range(7):
        category = category_factory(name=f"Cat {index}")
        txn_factory(basic_ledger["bank"], category, 10 + index, datetime(2024, 6, 1))

    insight = analytics.spending_insights(user.id, now=NOW)

    assert [c.name for c in insight.top_categories] == ["Cat 6", "Cat 5", "Cat 4", "Cat 3", "Cat 2"]


def test_spending_insights_empty(analytics, user):
    insight = analytics.spending_insights(user.id, now=NOW)

    assert insight.top_categories == []
    assert all(d.amount == 0 for d in insight.day_of_week_pattern)
    assert insight.month_over_month.change == 0
    assert insight.month_over_month.direction == "stable"
    assert insight.largest_transaction is None


def test_month_over_month_down(analytics, user, basic_ledger, txn_factory):
    txn_factory(basic_ledger["bank"], basic_ledger["food"], 200, datetime(2024, 5, 20))
    txn_factory(basic_ledger["bank"], basic_ledger["food"], 100, datetime(2024, 6, 5))

    mom = analytics.spending_insights(user.id, now=NOW).month_over_month

    assert mom.change == pytest.approx(50)
    assert mom.direction == "down"


# =============================================================================
# Health & summary
# =============================================================================


def test_financial_health(analytics, user, account_factory, basic_ledger, txn_factory):
    savings = account_factory(name="Savings", balance=10000)
    food = basic_ledger["food"]
    txn_factory(savings, food, 100, datetime(2024, 4, 10))
    txn_factory(savings, food, 200, datetime(2024, 5, 10))
    txn_factory(savings, food, 300, datetime(2024, 6, 10))

    health = analytics.financial_health(user.id, now=NOW)

    assert health.total_balance == 9400
    assert health.burn_rate == 200
    assert health.runway_months == 47.0
    assert health.spending_trend == "increasing"
    assert health.trend_percentage == 100


def test_financial_health_without_spending_uses_sentinel(analytics, user, account_factory):
    account_factory(balance=500)

    health = analytics.financial_health(user.id, now=NOW)

    assert health.burn_rate == 0
    assert health.runway_months == 999
    assert health.spending_trend == "stable"
    assert health.trend_percentage == 0


def test_financial_health_decreasing_trend(analytics, user, basic_ledger, txn_factory):
    food = basic_ledger["food"]
    txn_factory(basic_ledger["bank"], food, 400, datetime(2024, 4, 10))
    txn_factory(basic_ledger["bank"], food, 100, datetime(2024, 5, 10))

    health = analytics.financial_health(user.id, now=NOW)

    assert health.spending_trend == "decreasing"
    assert health.trend_percentage == 75


def test_dashboard_summary(analytics, user, basic_ledger, txn_factory):
    bank = basic_ledger["bank"]
    txn_factory(bank, basic_ledger["salary"], 2000, datetime(2024, 6, 1))
    txn_factory(bank, basic_ledger["food"], 500, datetime(2024, 6, 14))
    txn_factory(bank, basic_ledger["food"], 700, datetime(2024, 5, 14))

    summary = analytics.dashboard_summary(user.id, now=NOW)

    assert summary.total_balance == 800
    assert (summary.month_income, summary.month_expense, summary.month_net) == (2000, 500, 1500)


def test_analytics_are_scoped_per_user(analytics, other_user, basic_ledger, txn_factory):
    txn_factory(basic_ledger["bank"], basic_ledger["food"], 500, datetime(2024, 6, 2))

    assert analytics.dashboard_summary(other_user.id, now=NOW).month_expense == 0
    assert analytics.spending_insights(other_user.id, now=NOW).largest_transaction is None
