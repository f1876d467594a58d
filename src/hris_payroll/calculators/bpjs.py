"""BPJS Kesehatan / Ketenagakerjaan contribution calculator."""

from __future__ import annotations

from decimal import Decimal

from hris_payroll.calculators.rate_tables import BPJSRates
from hris_payroll.calculators.types import BPJSContributions, round_currency


def calculate_bpjs(basic_salary: Decimal, rates: BPJSRates) -> BPJSContributions:
    """Calculate the eight statutory contributions for a basic salary.

    Health insurance and the JP pension are computed on a capped basis;
    JHT, JKK and JKM use the full basic salary. JKK uses the flat low-risk
    rate, no risk-class tiering is applied.
    """
    health_basis = min(basic_salary, rates.health_cap)
    jp_basis = min(basic_salary, rates.jp_cap)

    return BPJSContributions(
        health_employee=round_currency(health_basis * rates.health_employee_rate),
        health_employer=round_currency(health_basis * rates.health_employer_rate),
        jht_employee=round_currency(basic_salary * rates.jht_employee_rate),
        jht_employer=round_currency(basic_salary * rates.jht_employer_rate),
        jkk=round_currency(basic_salary * rates.jkk_rate),
        jkm=round_currency(basic_salary * rates.jkm_rate),
        jp_employee=round_currency(jp_basis * rates.jp_employee_rate),
        jp_employer=round_currency(jp_basis * rates.jp_employer_rate),
    )
