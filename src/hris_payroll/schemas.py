"""Pydantic schemas for request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hris_payroll.exceptions import PayrollValidationError
from hris_payroll.models import PayrollStatus


_ModelT = TypeVar("_ModelT", bound=BaseModel)


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollGenerateRequest(BaseModel):
    """Schema for generating a payroll record."""

    employee_id: UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1, le=9999)


class PayrollAdjustment(BaseModel):
    """Partial update of a payroll record.

    Only editable adjustments and notes are accepted; statutory deductions
    and attendance figures are fixed at generation time.
    """

    model_config = ConfigDict(extra="forbid")

    overtime_pay: Decimal | None = Field(default=None, ge=0)
    thr: Decimal | None = Field(default=None, ge=0)
    other_deductions: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class PayrollStatusRequest(BaseModel):
    """Schema for a status transition."""

    status: PayrollStatus


class PayrollRecordResponse(BaseModel):
    """Schema for payroll record response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_id: UUID
    employee_id: UUID
    period_month: int
    period_year: int
    working_days: int
    present_days: int
    basic_salary: Decimal
    total_allowances: Decimal
    overtime_pay: Decimal
    thr: Decimal
    gross_salary: Decimal
    health_deduction: Decimal
    social_insurance_deduction: Decimal
    income_tax: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    status: str
    paid_at: datetime | None = None
    notes: str | None = None
    rate_table_version: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Compensation schemas
# ============================================================================


class CompensationCreate(BaseModel):
    """Schema for creating a compensation structure."""

    employee_id: UUID
    basic_salary: Decimal = Field(gt=0)
    transport_allowance: Decimal = Field(default=Decimal("0"), ge=0)
    meal_allowance: Decimal = Field(default=Decimal("0"), ge=0)
    housing_allowance: Decimal = Field(default=Decimal("0"), ge=0)
    position_allowance: Decimal = Field(default=Decimal("0"), ge=0)
    effective_date: date


class CompensationUpdate(BaseModel):
    """Partial update of a compensation structure."""

    model_config = ConfigDict(extra="forbid")

    basic_salary: Decimal | None = Field(default=None, gt=0)
    transport_allowance: Decimal | None = Field(default=None, ge=0)
    meal_allowance: Decimal | None = Field(default=None, ge=0)
    housing_allowance: Decimal | None = Field(default=None, ge=0)
    position_allowance: Decimal | None = Field(default=None, ge=0)
    effective_date: date | None = None


class CompensationResponse(BaseModel):
    """Schema for compensation structure response."""

    model_config = ConfigDict(from_attributes=True)

    compensation_id: UUID
    employee_id: UUID
    basic_salary: Decimal
    transport_allowance: Decimal
    meal_allowance: Decimal
    housing_allowance: Decimal
    position_allowance: Decimal
    bpjs_kes_employee: Decimal
    bpjs_kes_employer: Decimal
    jht_employee: Decimal
    jht_employer: Decimal
    jkk: Decimal
    jkm: Decimal
    jp_employee: Decimal
    jp_employer: Decimal
    effective_date: date


class ThrEstimate(BaseModel):
    """Suggested THR for an employee."""

    employee_id: UUID
    as_of: date
    months_worked: int
    monthly_salary: Decimal
    thr: Decimal


def parse_request(model: type[_ModelT], data: dict[str, Any]) -> _ModelT:
    """Validate raw input against a schema.

    Pydantic errors are re-raised as PayrollValidationError so callers only
    deal with the engine's own error taxonomy.
    """
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PayrollValidationError(str(exc)) from exc
