"""Exact money values: ``Decimal`` in Python, integer cents in the database."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

from sqlalchemy import Integer
from sqlalchemy.types import TypeDecorator

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
_CENT_EXPONENT = 2


def to_money(value: Any) -> Decimal:
    """Coerce ``value`` to a finite ``Decimal`` rounded half-up to cents.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.10")`` rather
    than its binary expansion. Raises ``ValueError`` for anything that is not
    a finite number.
    """

    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not amount.is_finite():
            raise ValueError(f"Amount must be finite: {value!r}")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not an amount: {value!r}") from exc


def as_number(amount: Decimal) -> Union[int, float]:
    """JSON-friendly rendering: whole amounts as ``int``, the rest as ``float``."""

    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


class Money(TypeDecorator):
    """``Decimal`` column persisted as a signed count of cents.

    Arithmetic in SQL (``balance + :delta``) stays in integers, so repeated
    adds and reversals never accumulate rounding error.
    """

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[int]:
        if value is None:
            return None
        return int(to_money(value).scaleb(_CENT_EXPONENT))

    def process_result_value(self, value: Optional[int], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-_CENT_EXPONENT)
