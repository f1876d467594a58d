"""PPh21 progressive income tax and PTKP resolution."""

from __future__ import annotations

from decimal import Decimal

from hris_payroll.calculators.rate_tables import PTKPTable, StatutoryRateTables, TaxBracket
from hris_payroll.calculators.types import ZERO, round_currency
from hris_payroll.exceptions import PayrollValidationError
from hris_payroll.models.employee import MaritalStatus

MONTHS_PER_YEAR = Decimal("12")


def resolve_ptkp(
    marital_status: str | MaritalStatus,
    dependents: int,
    table: PTKPTable,
) -> Decimal:
    """Annual non-taxable threshold for a marital status and dependent count.

    Dependents beyond the table's maximum add nothing.
    """
    if dependents < 0:
        raise PayrollValidationError(f"dependents cannot be negative: {dependents}")

    try:
        status = MaritalStatus(marital_status)
    except ValueError:
        raise PayrollValidationError(f"unknown marital status: {marital_status!r}") from None

    base = table.married if status == MaritalStatus.MARRIED else table.single
    counted = min(dependents, table.max_dependents)
    return base + table.per_dependent * counted


def calculate_annual_tax(taxable_income: Decimal, brackets: tuple[TaxBracket, ...]) -> Decimal:
    """Tax on annual taxable income using progressive brackets (unrounded)."""
    if taxable_income <= 0:
        return ZERO

    total_tax = ZERO
    remaining = taxable_income
    previous_limit = ZERO

    for bracket in brackets:
        if remaining <= 0:
            break

        if bracket.limit is None:
            taxable_in_bracket = remaining
        else:
            taxable_in_bracket = min(remaining, bracket.limit - previous_limit)
            previous_limit = bracket.limit

        total_tax += taxable_in_bracket * bracket.rate
        remaining -= taxable_in_bracket

    return total_tax


def calculate_pph21_monthly(
    annual_gross: Decimal,
    ptkp: Decimal,
    rates: StatutoryRateTables,
) -> Decimal:
    """Monthly PPh21 withholding for an annualized gross income.

    taxable = annual_gross - ptkp; zero or negative taxable income yields zero.
    The annual tax is spread evenly over twelve months and rounded.
    """
    taxable_income = annual_gross - ptkp
    if taxable_income <= 0:
        return ZERO

    annual_tax = calculate_annual_tax(taxable_income, rates.tax_brackets)
    return round_currency(annual_tax / MONTHS_PER_YEAR)
