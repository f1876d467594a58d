"""Payroll service - builds payroll records and enforces their lifecycle."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.engine import PayrollEngine, compute_totals
from hris_payroll.calculators.rate_tables import StatutoryRateTables, get_rate_tables
from hris_payroll.calculators.thr import calculate_thr, months_worked
from hris_payroll.calculators.types import to_decimal
from hris_payroll.exceptions import (
    ConflictError,
    DuplicatePayrollError,
    NotFoundError,
    PayrollValidationError,
)
from hris_payroll.models import Employee, PayrollRecord, PayrollStatus
from hris_payroll.models.base import utcnow
from hris_payroll.schemas import (
    PayrollAdjustment,
    PayrollGenerateRequest,
    ThrEstimate,
    parse_request,
)
from hris_payroll.services.attendance_service import AttendanceAggregator, validate_period
from hris_payroll.services.compensation_service import CompensationService
from hris_payroll.services.state_machine import PayrollStateMachine

logger = logging.getLogger(__name__)

# Dialects with a native INSERT ... ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_PERIOD_KEY = ["employee_id", "period_month", "period_year"]


def _as_uuid(value: UUID | str, label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise PayrollValidationError(f"{label} is not a valid UUID: {value!r}") from None


class PayrollService:
    """Service for generating payroll records and managing their lifecycle.

    Operations:
    - generate: compute and persist a draft record for (employee, month, year)
    - get / list_*: read records
    - update: apply adjustments and recompute totals (not once paid)
    - annotate: change notes in any status
    - transition: draft → processed → paid
    - delete: drafts only
    - estimate_thr: suggested holiday bonus for an employee
    """

    def __init__(self, session: AsyncSession, rates: StatutoryRateTables | None = None):
        self.session = session
        self.rates = rates or get_rate_tables()
        self.engine = PayrollEngine(self.rates)
        self.attendance = AttendanceAggregator(session)
        self.compensation = CompensationService(session, self.rates)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, employee_id: UUID | str, month: int, year: int) -> PayrollRecord:
        """Generate the payroll record for an employee and period.

        Raises:
            PayrollValidationError: malformed identifier or period
            NotFoundError: employee or compensation structure missing
            DuplicatePayrollError: a record already exists for the period
        """
        request = parse_request(
            PayrollGenerateRequest,
            {"employee_id": employee_id, "month": month, "year": year},
        )

        employee = await self._get_employee(request.employee_id)

        existing = await self.find_for_period(employee.employee_id, request.month, request.year)
        if existing is not None:
            logger.warning(
                "Rejected duplicate payroll for employee %s period %02d/%d",
                employee.employee_id,
                request.month,
                request.year,
            )
            raise DuplicatePayrollError(employee.employee_id, request.month, request.year)

        compensation = await self.compensation.resolve_current(employee.employee_id)
        attendance = await self.attendance.aggregate(
            employee.employee_id, request.month, request.year
        )
        computation = self.engine.compute(compensation, attendance, employee.marital_status)

        values = {
            "payroll_id": uuid4(),
            "employee_id": employee.employee_id,
            "period_month": request.month,
            "period_year": request.year,
            "status": PayrollStatus.DRAFT.value,
            **computation.to_record_values(),
        }
        record = await self._insert_if_absent(values)

        logger.info(
            "Generated payroll %s for employee %s period %s: gross=%s deductions=%s net=%s",
            record.payroll_id,
            record.employee_id,
            record.period_label,
            record.gross_salary,
            record.total_deductions,
            record.net_salary,
        )
        return record

    async def _insert_if_absent(self, values: dict[str, Any]) -> PayrollRecord:
        """Insert a record unless one already exists for the same period.

        The unique (employee, month, year) constraint decides; a concurrent
        generate that passed the existence check still ends in a conflict.
        """
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)

        if insert is None:
            record = PayrollRecord(**values)
            self.session.add(record)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicatePayrollError(
                    values["employee_id"], values["period_month"], values["period_year"]
                ) from exc
            return record

        result = await self.session.execute(
            insert(PayrollRecord.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=_PERIOD_KEY)
        )
        if result.rowcount == 0:
            raise DuplicatePayrollError(
                values["employee_id"], values["period_month"], values["period_year"]
            )

        record = await self.session.get(PayrollRecord, values["payroll_id"])
        if record is None:
            raise NotFoundError("Payroll", values["payroll_id"])
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, payroll_id: UUID | str) -> PayrollRecord:
        """Load a payroll record or raise NotFoundError."""
        record = await self.session.get(PayrollRecord, _as_uuid(payroll_id, "payroll_id"))
        if record is None:
            raise NotFoundError("Payroll", payroll_id)
        return record

    async def find_for_period(
        self, employee_id: UUID, month: int, year: int
    ) -> PayrollRecord | None:
        result = await self.session.execute(
            select(PayrollRecord).where(
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.period_month == month,
                PayrollRecord.period_year == year,
            )
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[PayrollRecord]:
        result = await self.session.execute(
            select(PayrollRecord).order_by(
                PayrollRecord.period_year.desc(),
                PayrollRecord.period_month.desc(),
                PayrollRecord.created_at.desc(),
            )
        )
        return list(result.scalars().all())

    async def list_by_employee(self, employee_id: UUID | str) -> list[PayrollRecord]:
        """Payroll history for an employee, most recent period first."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.employee_id == _as_uuid(employee_id, "employee_id"))
            .order_by(PayrollRecord.period_year.desc(), PayrollRecord.period_month.desc())
        )
        return list(result.scalars().all())

    async def list_by_period(self, month: int, year: int) -> list[PayrollRecord]:
        """All records for a period."""
        validate_period(month, year)
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.period_month == month, PayrollRecord.period_year == year)
            .order_by(PayrollRecord.created_at)
        )
        return list(result.scalars().all())

    async def list_paid_by_employee(self, employee_id: UUID | str) -> list[PayrollRecord]:
        """Paid records (payslips) for an employee, most recent period first."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(
                PayrollRecord.employee_id == _as_uuid(employee_id, "employee_id"),
                PayrollRecord.status == PayrollStatus.PAID.value,
            )
            .order_by(PayrollRecord.period_year.desc(), PayrollRecord.period_month.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def update(
        self,
        payroll_id: UUID | str,
        adjustment: PayrollAdjustment | dict[str, Any],
    ) -> PayrollRecord:
        """Apply adjustments and recompute gross, total deductions and net.

        Health, social insurance and income tax keep the values locked in at
        generation; they are not recomputed here.
        """
        if not isinstance(adjustment, PayrollAdjustment):
            adjustment = parse_request(PayrollAdjustment, adjustment)

        record = await self.get(payroll_id)
        if not PayrollStateMachine.can_adjust(record.status):
            raise ConflictError(f"Cannot update {record.status} payroll {record.payroll_id}")

        changes = adjustment.model_dump(exclude_none=True)
        locked = set(changes) - (PayrollRecord.ADJUSTABLE_FIELDS | {"notes"})
        if locked:
            raise PayrollValidationError(
                f"Fields cannot be adjusted: {', '.join(sorted(locked))}"
            )
        for field_name, value in changes.items():
            setattr(record, field_name, value)

        self._recompute_totals(record)
        await self.session.flush()

        logger.info(
            "Updated payroll %s (%s): gross=%s deductions=%s net=%s",
            record.payroll_id,
            ", ".join(sorted(changes)) or "no changes",
            record.gross_salary,
            record.total_deductions,
            record.net_salary,
        )
        return record

    async def annotate(self, payroll_id: UUID | str, notes: str | None) -> PayrollRecord:
        """Replace the free-text notes; allowed in every status."""
        record = await self.get(payroll_id)
        record.notes = notes
        await self.session.flush()
        return record

    async def transition(
        self, payroll_id: UUID | str, next_status: PayrollStatus | str
    ) -> PayrollRecord:
        """Move a record to its next status.

        Raises InvalidTransitionError for anything other than
        draft → processed or processed → paid.
        """
        target = PayrollStatus.parse(next_status)
        record = await self.get(payroll_id)

        PayrollStateMachine.validate_transition(record.status, target)

        old_status = record.status
        record.status = target.value
        if target == PayrollStatus.PAID:
            record.paid_at = utcnow()

        await self.session.flush()
        logger.info(
            "Payroll %s status changed %s -> %s", record.payroll_id, old_status, target.value
        )
        return record

    async def delete(self, payroll_id: UUID | str) -> None:
        """Delete a draft record."""
        record = await self.get(payroll_id)
        if not PayrollStateMachine.can_delete(record.status):
            raise ConflictError(
                f"Can only delete draft payroll; {record.payroll_id} is {record.status}"
            )

        await self.session.delete(record)
        await self.session.flush()
        logger.info("Deleted draft payroll %s", record.payroll_id)

    # ------------------------------------------------------------------
    # THR
    # ------------------------------------------------------------------

    async def estimate_thr(
        self, employee_id: UUID | str, as_of: date | None = None
    ) -> ThrEstimate:
        """Suggested THR from tenure and current basic salary.

        The estimate is not written to any record; apply it with
        ``update(payroll_id, {"thr": estimate.thr})``.
        """
        employee = await self._get_employee(_as_uuid(employee_id, "employee_id"))
        compensation = await self.compensation.resolve_current(employee.employee_id)

        as_of = as_of or date.today()
        months = months_worked(employee.join_date, as_of)
        monthly_salary = to_decimal(compensation.basic_salary)

        return ThrEstimate(
            employee_id=employee.employee_id,
            as_of=as_of,
            months_worked=months,
            monthly_salary=monthly_salary,
            thr=calculate_thr(monthly_salary, months),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_employee(self, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    @staticmethod
    def _recompute_totals(record: PayrollRecord) -> None:
        totals = compute_totals(
            basic_salary=to_decimal(record.basic_salary),
            total_allowances=to_decimal(record.total_allowances),
            overtime_pay=to_decimal(record.overtime_pay),
            thr=to_decimal(record.thr),
            health_deduction=to_decimal(record.health_deduction),
            social_insurance_deduction=to_decimal(record.social_insurance_deduction),
            income_tax=to_decimal(record.income_tax),
            other_deductions=to_decimal(record.other_deductions),
        )
        record.gross_salary = totals.gross_salary
        record.total_deductions = totals.total_deductions
        record.net_salary = totals.net_salary
