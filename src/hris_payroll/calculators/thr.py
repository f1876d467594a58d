"""THR (Tunjangan Hari Raya) holiday bonus."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from hris_payroll.calculators.types import ZERO, round_currency

FULL_YEAR_MONTHS = 12


def months_worked(join_date: date, as_of: date) -> int:
    """Whole calendar months between join date and as-of date, never negative."""
    months = (as_of.year - join_date.year) * 12 + as_of.month - join_date.month
    return max(months, 0)


def calculate_thr(monthly_salary: Decimal, months: int) -> Decimal:
    """One month's salary after a full year, pro rata before that."""
    if months >= FULL_YEAR_MONTHS:
        return round_currency(monthly_salary)
    if months <= 0:
        return ZERO
    return round_currency(Decimal(months) / Decimal(FULL_YEAR_MONTHS) * monthly_salary)
