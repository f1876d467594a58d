"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

ZERO = Decimal("0")
WHOLE_UNIT = Decimal("1")


def round_currency(amount: Decimal) -> Decimal:
    """Round to the nearest whole currency unit (half away from zero)."""
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, strings and floats to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class BPJSContributions:
    """Statutory BPJS contributions computed from a basic salary."""

    health_employee: Decimal
    health_employer: Decimal
    jht_employee: Decimal
    jht_employer: Decimal
    jkk: Decimal
    jkm: Decimal
    jp_employee: Decimal
    jp_employer: Decimal

    @property
    def social_insurance_employee(self) -> Decimal:
        """Employee share of BPJS Ketenagakerjaan (JHT + JP)."""
        return self.jht_employee + self.jp_employee

    @property
    def employee_total(self) -> Decimal:
        return self.health_employee + self.social_insurance_employee

    @property
    def employer_total(self) -> Decimal:
        return (
            self.health_employer
            + self.jht_employer
            + self.jkk
            + self.jkm
            + self.jp_employer
        )


@dataclass(frozen=True)
class AttendanceSummary:
    """Attendance reduced to the figures payroll needs."""

    working_days: int
    present_days: int
    total_overtime_hours: Decimal


@dataclass(frozen=True)
class PayrollTotals:
    """Derived totals of a payroll record, all in whole currency units."""

    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal


@dataclass(frozen=True)
class PayrollComputation:
    """All figures of a freshly generated payroll record."""

    working_days: int
    present_days: int
    basic_salary: Decimal
    total_allowances: Decimal
    overtime_pay: Decimal
    health_deduction: Decimal
    social_insurance_deduction: Decimal
    income_tax: Decimal
    totals: PayrollTotals
    rate_table_version: str

    def to_record_values(self) -> dict[str, Any]:
        """Column values for a new payroll record."""
        return {
            "working_days": self.working_days,
            "present_days": self.present_days,
            "basic_salary": self.basic_salary,
            "total_allowances": self.total_allowances,
            "overtime_pay": self.overtime_pay,
            "thr": ZERO,
            "gross_salary": self.totals.gross_salary,
            "health_deduction": self.health_deduction,
            "social_insurance_deduction": self.social_insurance_deduction,
            "income_tax": self.income_tax,
            "other_deductions": ZERO,
            "total_deductions": self.totals.total_deductions,
            "net_salary": self.totals.net_salary,
            "rate_table_version": self.rate_table_version,
        }
