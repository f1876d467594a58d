"""Payroll calculation engine - pure orchestration of the statutory calculators."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from hris_payroll.calculators.overtime import calculate_overtime
from hris_payroll.calculators.rate_tables import StatutoryRateTables
from hris_payroll.calculators.tax_calculator import calculate_pph21_monthly, resolve_ptkp
from hris_payroll.calculators.types import (
    AttendanceSummary,
    PayrollComputation,
    PayrollTotals,
    round_currency,
)

if TYPE_CHECKING:
    from hris_payroll.models import CompensationStructure

MONTHS_PER_YEAR = Decimal("12")


def compute_totals(
    *,
    basic_salary: Decimal,
    total_allowances: Decimal,
    overtime_pay: Decimal,
    thr: Decimal,
    health_deduction: Decimal,
    social_insurance_deduction: Decimal,
    income_tax: Decimal,
    other_deductions: Decimal,
) -> PayrollTotals:
    """Gross, total deductions and net, each rounded to whole units."""
    gross = basic_salary + total_allowances + overtime_pay + thr
    deductions = health_deduction + social_insurance_deduction + income_tax + other_deductions
    return PayrollTotals(
        gross_salary=round_currency(gross),
        total_deductions=round_currency(deductions),
        net_salary=round_currency(gross - deductions),
    )


class PayrollEngine:
    """Computes a payroll record from compensation, attendance and rates.

    Calculation pipeline (stable order):
    1) Sum the four allowances
    2) Overtime pay from total overtime hours (always weekday rates)
    3) Gross = basic + allowances + overtime
    4) Health and social insurance copied from the compensation snapshot
    5) PPh21 on gross x 12 with PTKP for the marital status, no dependents
    6) Total deductions and net, rounded
    """

    def __init__(self, rates: StatutoryRateTables):
        self.rates = rates

    def compute(
        self,
        compensation: CompensationStructure,
        attendance: AttendanceSummary,
        marital_status: str,
    ) -> PayrollComputation:
        basic_salary = compensation.basic_salary
        total_allowances = compensation.total_allowances

        # Holiday calendar is not consulted; weekday rates apply to all hours.
        overtime_pay = calculate_overtime(
            basic_salary,
            attendance.total_overtime_hours,
            is_holiday=False,
            rules=self.rates.overtime,
        )
        gross = basic_salary + total_allowances + overtime_pay

        health_deduction = compensation.bpjs_kes_employee
        social_insurance_deduction = compensation.social_insurance_employee

        ptkp = resolve_ptkp(marital_status, 0, self.rates.ptkp)
        income_tax = calculate_pph21_monthly(gross * MONTHS_PER_YEAR, ptkp, self.rates)

        totals = compute_totals(
            basic_salary=basic_salary,
            total_allowances=total_allowances,
            overtime_pay=overtime_pay,
            thr=Decimal("0"),
            health_deduction=health_deduction,
            social_insurance_deduction=social_insurance_deduction,
            income_tax=income_tax,
            other_deductions=Decimal("0"),
        )

        return PayrollComputation(
            working_days=attendance.working_days,
            present_days=attendance.present_days,
            basic_salary=basic_salary,
            total_allowances=total_allowances,
            overtime_pay=overtime_pay,
            health_deduction=health_deduction,
            social_insurance_deduction=social_insurance_deduction,
            income_tax=income_tax,
            totals=totals,
            rate_table_version=self.rates.version,
        )
