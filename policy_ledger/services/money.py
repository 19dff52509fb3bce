"""
Money and date primitives.

All monetary values are integer cents. Multiplication by a rate goes
through Decimal and rounds half-up to the nearest cent, so results never
depend on binary float representation.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from policy_ledger.config import settings

Number = Union[int, float, str, Decimal]

_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
    return Decimal(str(value))


def round_half_up(value: Number) -> int:
    """Round to the nearest whole cent, halves away from zero."""
    return int(_to_decimal(value).quantize(_ONE, rounding=ROUND_HALF_UP))


def apply_rate(cents: int, rate: Number) -> int:
    """Multiply an amount by a fractional rate (0.10 = 10%)."""
    return round_half_up(Decimal(cents) * _to_decimal(rate))


def apply_percentage(cents: int, percentage: Number) -> int:
    """Multiply an amount by a whole percentage (50 = 50%)."""
    return round_half_up(Decimal(cents) * _to_decimal(percentage) / _HUNDRED)


def rands_to_cents(amount: Number) -> int:
    """Convert a decimal rand amount to cents."""
    return round_half_up(_to_decimal(amount) * _HUNDRED)


def cents_to_rands(cents: int) -> Decimal:
    """Convert cents to a two-place rand amount."""
    return (Decimal(cents) / _HUNDRED).quantize(Decimal("0.01"))


def format_zar(cents: int) -> str:
    """
    Format cents as a ZAR string.

    10050   -> "R 100.50"
    100050  -> "R 1 000.50"
    -5000   -> "-R 50.00"
    """
    sign = "-" if cents < 0 else ""
    rands = cents_to_rands(abs(cents))
    whole, fraction = f"{rands:.2f}".split(".")
    grouped = f"{int(whole):,}".replace(",", " ")
    return f"{sign}R {grouped}.{fraction}"


# ── VAT ─────────────────────────────────────────────────


def calculate_vat(amount_excl_cents: int, rate: Optional[Number] = None) -> int:
    """VAT due on a VAT-exclusive amount."""
    vat_rate = _to_decimal(settings.vat_rate if rate is None else rate)
    return apply_rate(amount_excl_cents, vat_rate)


def add_vat(amount_excl_cents: int, rate: Optional[Number] = None) -> int:
    """VAT-inclusive amount for a VAT-exclusive one."""
    return amount_excl_cents + calculate_vat(amount_excl_cents, rate)


def extract_vat(amount_incl_cents: int, rate: Optional[Number] = None) -> int:
    """VAT portion contained in a VAT-inclusive amount."""
    vat_rate = _to_decimal(settings.vat_rate if rate is None else rate)
    return round_half_up(Decimal(amount_incl_cents) * vat_rate / (_ONE + vat_rate))


# ── Dates ───────────────────────────────────────────────


def today() -> date:
    """Current UTC date."""
    return datetime.now(timezone.utc).date()


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end is earlier)."""
    return (end - start).days


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_months(value: date, months: int) -> date:
    """
    Shift a date by whole months, clamping to the last day of the month.

    2024-01-31 + 1 month -> 2024-02-29
    """
    return value + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Number of whole months elapsed from start to end (0 if end < start)."""
    if end < start:
        return 0
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months
