"""Versioned statutory rate tables.

Every constant used by the calculators (BPJS percentages and caps, PTKP
thresholds, PPh21 brackets and overtime multipliers) lives here as frozen
data. Calculators receive a ``StatutoryRateTables`` instance explicitly, so a
regulatory change is a new table version rather than a code change.

Tables can be built from a JSON payload with structure:
{
    "version": "2024",
    "bpjs": {
        "health_cap": 12000000, "health_employee_rate": 0.01, ...
    },
    "ptkp": {
        "single": 54000000, "married": 58500000,
        "per_dependent": 4500000, "max_dependents": 3
    },
    "tax_brackets": [
        {"limit": 60000000, "rate": 0.05},
        ...
        {"limit": null, "rate": 0.35}
    ],
    "overtime": {
        "hourly_divisor": 173,
        "weekday_tiers": [{"hours": 1, "multiplier": 1.5}, {"hours": null, "multiplier": 2}],
        "holiday_tiers": [...]
    }
}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

from hris_payroll.config import get_settings
from hris_payroll.exceptions import PayrollValidationError


def _dec(value: Any) -> Decimal:
    return Decimal(str(value))


def _optional_dec(value: Any) -> Decimal | None:
    return None if value is None else _dec(value)


@dataclass(frozen=True)
class BPJSRates:
    """BPJS Kesehatan and Ketenagakerjaan rates."""

    health_cap: Decimal
    health_employee_rate: Decimal
    health_employer_rate: Decimal
    jht_employee_rate: Decimal
    jht_employer_rate: Decimal
    jkk_rate: Decimal
    jkm_rate: Decimal
    jp_cap: Decimal
    jp_employee_rate: Decimal
    jp_employer_rate: Decimal


@dataclass(frozen=True)
class PTKPTable:
    """Annual non-taxable income thresholds."""

    single: Decimal
    married: Decimal
    per_dependent: Decimal
    max_dependents: int

    def __post_init__(self) -> None:
        if self.max_dependents < 0:
            raise PayrollValidationError("max_dependents cannot be negative")


@dataclass(frozen=True)
class TaxBracket:
    """PPh21 bracket expressed as a cumulative upper limit."""

    limit: Decimal | None  # None = no upper limit
    rate: Decimal


@dataclass(frozen=True)
class OvertimeTier:
    """A run of overtime hours paid at one multiplier."""

    hours: Decimal | None  # None = all remaining hours
    multiplier: Decimal


@dataclass(frozen=True)
class OvertimeRules:
    """Overtime premium rules."""

    hourly_divisor: Decimal
    weekday_tiers: tuple[OvertimeTier, ...]
    holiday_tiers: tuple[OvertimeTier, ...]


@dataclass(frozen=True)
class StatutoryRateTables:
    """Immutable bundle of all statutory rates for one regulatory version."""

    version: str
    bpjs: BPJSRates
    ptkp: PTKPTable
    tax_brackets: tuple[TaxBracket, ...]
    overtime: OvertimeRules

    def __post_init__(self) -> None:
        if not self.tax_brackets:
            raise PayrollValidationError("at least one tax bracket is required")
        if self.tax_brackets[-1].limit is not None:
            raise PayrollValidationError("the last tax bracket must be unbounded")
        limits = [b.limit for b in self.tax_brackets[:-1]]
        if any(limit is None for limit in limits) or limits != sorted(limits):
            raise PayrollValidationError("tax bracket limits must be ascending")

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> StatutoryRateTables:
        """Build a table from a JSON-style payload."""
        try:
            bpjs = payload["bpjs"]
            ptkp = payload["ptkp"]
            overtime = payload["overtime"]
            return cls(
                version=str(payload["version"]),
                bpjs=BPJSRates(**{k: _dec(v) for k, v in bpjs.items()}),
                ptkp=PTKPTable(
                    single=_dec(ptkp["single"]),
                    married=_dec(ptkp["married"]),
                    per_dependent=_dec(ptkp["per_dependent"]),
                    max_dependents=int(ptkp["max_dependents"]),
                ),
                tax_brackets=tuple(
                    TaxBracket(limit=_optional_dec(b.get("limit")), rate=_dec(b["rate"]))
                    for b in payload["tax_brackets"]
                ),
                overtime=OvertimeRules(
                    hourly_divisor=_dec(overtime["hourly_divisor"]),
                    weekday_tiers=_parse_tiers(overtime["weekday_tiers"]),
                    holiday_tiers=_parse_tiers(overtime["holiday_tiers"]),
                ),
            )
        except (KeyError, TypeError, ArithmeticError) as exc:
            raise PayrollValidationError(f"Malformed rate table payload: {exc}") from exc

    @classmethod
    def from_json_file(cls, path: str | Path) -> StatutoryRateTables:
        """Load a table from a JSON file."""
        try:
            with open(path, encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, ValueError) as exc:
            raise PayrollValidationError(f"Cannot load rate table {path}: {exc}") from exc
        return cls.from_dict(payload)


def _parse_tiers(raw: list[dict[str, Any]]) -> tuple[OvertimeTier, ...]:
    return tuple(
        OvertimeTier(hours=_optional_dec(t.get("hours")), multiplier=_dec(t["multiplier"]))
        for t in raw
    )


# UU HPP 2022 brackets, PMK 101/2016 PTKP, BPJS caps effective 2024,
# overtime per Kepmenakertrans 102/MEN/VI/2004.
RATE_TABLES_2024 = StatutoryRateTables(
    version="2024",
    bpjs=BPJSRates(
        health_cap=Decimal("12000000"),
        health_employee_rate=Decimal("0.01"),
        health_employer_rate=Decimal("0.04"),
        jht_employee_rate=Decimal("0.02"),
        jht_employer_rate=Decimal("0.037"),
        jkk_rate=Decimal("0.0024"),
        jkm_rate=Decimal("0.003"),
        jp_cap=Decimal("10042300"),
        jp_employee_rate=Decimal("0.01"),
        jp_employer_rate=Decimal("0.02"),
    ),
    ptkp=PTKPTable(
        single=Decimal("54000000"),
        married=Decimal("58500000"),
        per_dependent=Decimal("4500000"),
        max_dependents=3,
    ),
    tax_brackets=(
        TaxBracket(limit=Decimal("60000000"), rate=Decimal("0.05")),
        TaxBracket(limit=Decimal("250000000"), rate=Decimal("0.15")),
        TaxBracket(limit=Decimal("500000000"), rate=Decimal("0.25")),
        TaxBracket(limit=Decimal("5000000000"), rate=Decimal("0.30")),
        TaxBracket(limit=None, rate=Decimal("0.35")),
    ),
    overtime=OvertimeRules(
        hourly_divisor=Decimal("173"),
        weekday_tiers=(
            OvertimeTier(hours=Decimal("1"), multiplier=Decimal("1.5")),
            OvertimeTier(hours=None, multiplier=Decimal("2")),
        ),
        holiday_tiers=(
            OvertimeTier(hours=Decimal("7"), multiplier=Decimal("2")),
            OvertimeTier(hours=Decimal("1"), multiplier=Decimal("3")),
            OvertimeTier(hours=None, multiplier=Decimal("4")),
        ),
    ),
)

BUILTIN_RATE_TABLES: dict[str, StatutoryRateTables] = {
    RATE_TABLES_2024.version: RATE_TABLES_2024,
}


class RateTableNotFoundError(PayrollValidationError):
    """Raised when a requested rate table version is not available."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Rate table version '{version}' not found "
            f"(available: {', '.join(sorted(BUILTIN_RATE_TABLES))})"
        )


def get_builtin_rate_tables(version: str) -> StatutoryRateTables:
    """Look up a built-in table by version."""
    try:
        return BUILTIN_RATE_TABLES[version]
    except KeyError:
        raise RateTableNotFoundError(version) from None


@lru_cache(maxsize=1)
def get_rate_tables() -> StatutoryRateTables:
    """Get the configured rate table, loaded once.

    ``RATE_TABLE_PATH`` takes precedence over ``RATE_TABLE_VERSION``.
    """
    settings = get_settings()
    if settings.rate_table_path:
        return StatutoryRateTables.from_json_file(settings.rate_table_path)
    return get_builtin_rate_tables(settings.rate_table_version)
