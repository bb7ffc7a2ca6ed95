"""Utility functions for the mortgage calculator.

This module collects the small numeric helpers shared by every calculator
(cent rounding, the annuity formula and the zero-rate test) together with
the date and input parsing helpers used by the command-line and web
front ends.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

ZERO_RATE_EPSILON = 1e-12
CENT = Decimal("0.01")


def round_currency(value: float) -> float:
    """Round ``value`` to cents using standard (half-up) rounding.

    The value goes through its shortest ``repr`` before quantizing so that
    binary artifacts such as ``1.005`` being stored as ``1.00499999...``
    still round up the way a person would expect.
    """
    return float(Decimal(repr(float(value))).quantize(CENT, rounding=ROUND_HALF_UP))


def monthly_rate(annual_rate_pct: float) -> float:
    """Convert a nominal annual percentage (``6.5``) to a monthly decimal rate."""
    return (annual_rate_pct or 0.0) / 100 / 12


def is_zero_rate(rate_per_month: float, epsilon: float = ZERO_RATE_EPSILON) -> bool:
    return abs(rate_per_month) < epsilon


def annuity_payment(principal: float, rate_per_month: float, term: int) -> float:
    """Return the level monthly payment for a fully amortizing loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. A non-positive term yields ``0.0``
    rather than an error so incomplete forms still render.
    """
    if term <= 0:
        return 0.0
    if is_zero_rate(rate_per_month):
        return principal / term
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except Exception as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_month_start(today: Optional[date] = None) -> date:
    """First day of the month after ``today`` (defaults to the current date)."""
    today = today or date.today()
    return add_months(today.replace(day=1), 1)


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000"), thousands separators ("500,000") and
    shorthand with ``k``/``m`` suffixes (e.g. "500k" meaning 500_000).
    """
    cleaned = str(value).strip().lower().replace(",", "").replace("$", "")
    factor = 1.0
    if cleaned.endswith("k"):
        factor = 1_000.0
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = 1_000_000.0
        cleaned = cleaned[:-1]
    try:
        return float(cleaned) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def coerce_float(value, default: float = 0.0) -> float:
    """Loose numeric coercion for form fields.

    ``None`` and blank strings fall back to ``default``; anything else that
    does not parse raises ``ValueError``.
    """
    if value is None:
        return default
    if isinstance(value, str):
        if not value.strip():
            return default
        return parse_amount(value)
    return float(value)
