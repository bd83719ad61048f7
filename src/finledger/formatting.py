"""Display helpers mirroring how the ledger presents money and percentages."""

from __future__ import annotations

from decimal import Decimal

RUNWAY_CAP = 100


def format_currency(amount: Decimal | float, symbol: str = "Rp") -> str:
    """Whole-unit rupiah style with dot thousands separators, e.g. ``Rp 1.500.000``."""

    rounded = int(round(abs(amount)))
    grouped = f"{rounded:,}".replace(",", ".")
    sign = "-" if amount < 0 and rounded else ""
    return f"{sign}{symbol} {grouped}"


def format_percentage(value: float) -> str:
    """Signed percentage with one decimal, e.g. ``+12.5%``."""

    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.1f}%"


def format_runway(months: float) -> str:
    """Runway in months; anything beyond the cap (including the sentinel) shows as ``100+``."""

    if months > RUNWAY_CAP:
        return f"{RUNWAY_CAP}+"
    return f"{months:g}"
