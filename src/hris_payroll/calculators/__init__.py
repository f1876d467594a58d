"""Statutory payroll calculators."""

from hris_payroll.calculators.bpjs import calculate_bpjs
from hris_payroll.calculators.engine import PayrollEngine, compute_totals
from hris_payroll.calculators.overtime import calculate_overtime
from hris_payroll.calculators.rate_tables import (
    RATE_TABLES_2024,
    StatutoryRateTables,
    get_rate_tables,
)
from hris_payroll.calculators.tax_calculator import calculate_pph21_monthly, resolve_ptkp
from hris_payroll.calculators.thr import calculate_thr, months_worked

__all__ = [
    "PayrollEngine",
    "RATE_TABLES_2024",
    "StatutoryRateTables",
    "calculate_bpjs",
    "calculate_overtime",
    "calculate_pph21_monthly",
    "calculate_thr",
    "compute_totals",
    "get_rate_tables",
    "months_worked",
    "resolve_ptkp",
]
