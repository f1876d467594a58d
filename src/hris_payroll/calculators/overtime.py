"""Overtime premium calculator."""

from __future__ import annotations

from decimal import Decimal

from hris_payroll.calculators.rate_tables import OvertimeRules
from hris_payroll.calculators.types import ZERO, round_currency
from hris_payroll.exceptions import PayrollValidationError


def hourly_rate(monthly_salary: Decimal, rules: OvertimeRules) -> Decimal:
    """Hourly wage used for overtime (monthly salary / 173)."""
    return monthly_salary / rules.hourly_divisor


def calculate_overtime(
    monthly_salary: Decimal,
    overtime_hours: Decimal,
    is_holiday: bool,
    rules: OvertimeRules,
) -> Decimal:
    """Overtime pay for a number of hours.

    Weekday: first hour at 1.5x, every further hour at 2x.
    Holiday: hours 1-7 at 2x, hour 8 at 3x, beyond that at 4x.

    Hours are consumed tier by tier until exhausted; fractional hours are
    paid pro rata within their tier.
    """
    if overtime_hours < 0:
        raise PayrollValidationError(f"overtime hours cannot be negative: {overtime_hours}")
    if overtime_hours == 0:
        return ZERO

    rate = hourly_rate(monthly_salary, rules)
    tiers = rules.holiday_tiers if is_holiday else rules.weekday_tiers

    pay = ZERO
    remaining = overtime_hours
    for tier in tiers:
        if remaining <= 0:
            break
        hours_in_tier = remaining if tier.hours is None else min(remaining, tier.hours)
        pay += hours_in_tier * tier.multiplier * rate
        remaining -= hours_in_tier

    return round_currency(pay)
