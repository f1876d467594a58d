"""Tests for payroll generation and lifecycle."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from hris_payroll.exceptions import (
    ConflictError,
    DuplicatePayrollError,
    NotFoundError,
    PayrollValidationError,
)
from hris_payroll.models import Employee, PayrollRecord
from hris_payroll.schemas import CompensationCreate, PayrollAdjustment
from hris_payroll.services.compensation_service import CompensationService
from hris_payroll.services.state_machine import InvalidTransitionError

pytestmark = pytest.mark.asyncio


def _is_whole(amount: Decimal) -> bool:
    return amount == amount.to_integral_value()


async def _count_records(session) -> int:
    result = await session.execute(select(func.count()).select_from(PayrollRecord))
    return result.scalar_one()


class TestGenerate:
    """March 2024 for a 10,000,000 basic salary with 3.5 overtime hours."""

    async def test_generate_figures(
        self, payroll_service, employee, compensation, march_attendance
    ):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        assert record.status == "draft"
        assert record.working_days == 21
        assert record.present_days == 3
        assert record.basic_salary == Decimal("10000000")
        assert record.total_allowances == Decimal("1000000")
        # (1 * 1.5 + 2.5 * 2) * 10,000,000 / 173
        assert record.overtime_pay == Decimal("375723")
        assert record.thr == Decimal("0")
        assert record.gross_salary == Decimal("11375723")
        assert record.health_deduction == Decimal("100000")
        # JHT 200,000 + JP 100,000
        assert record.social_insurance_deduction == Decimal("300000")
        # (136,508,676 - 54,000,000) taxed, / 12
        assert record.income_tax == Decimal("531358")
        assert record.other_deductions == Decimal("0")
        assert record.total_deductions == Decimal("931358")
        assert record.net_salary == Decimal("10444365")
        assert record.rate_table_version == "2024"
        assert record.paid_at is None

    async def test_totals_are_whole_units(
        self, payroll_service, employee, compensation, march_attendance
    ):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        assert _is_whole(record.gross_salary)
        assert _is_whole(record.total_deductions)
        assert _is_whole(record.net_salary)

    async def test_accepts_string_employee_id(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(str(employee.employee_id), 6, 2024)

        assert record.employee_id == employee.employee_id
        assert record.working_days == 20
        assert record.present_days == 0

    async def test_duplicate_period_conflicts(
        self, session, payroll_service, employee, compensation
    ):
        await payroll_service.generate(employee.employee_id, 3, 2024)

        with pytest.raises(DuplicatePayrollError) as exc_info:
            await payroll_service.generate(employee.employee_id, 3, 2024)

        assert isinstance(exc_info.value, ConflictError)
        assert await _count_records(session) == 1

    async def test_insert_is_atomic_on_period(
        self, session, payroll_service, employee, compensation
    ):
        """A racing insert that skipped the existence check still conflicts."""
        first = await payroll_service.generate(employee.employee_id, 3, 2024)
        values = {
            column.name: getattr(first, column.name)
            for column in PayrollRecord.__table__.columns
            if column.name not in ("created_at", "updated_at")
        }
        values["payroll_id"] = uuid4()

        with pytest.raises(DuplicatePayrollError):
            await payroll_service._insert_if_absent(values)

        assert await _count_records(session) == 1

    async def test_same_employee_other_period(self, session, payroll_service, employee, compensation):
        await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.generate(employee.employee_id, 4, 2024)

        assert await _count_records(session) == 2

    async def test_unknown_employee(self, payroll_service):
        with pytest.raises(NotFoundError):
            await payroll_service.generate(uuid4(), 3, 2024)

    async def test_missing_salary(self, payroll_service, employee):
        with pytest.raises(NotFoundError) as exc_info:
            await payroll_service.generate(employee.employee_id, 3, 2024)

        assert "please set salary first" in str(exc_info.value)

    async def test_invalid_month(self, payroll_service, employee, compensation):
        with pytest.raises(PayrollValidationError):
            await payroll_service.generate(employee.employee_id, 13, 2024)

    async def test_invalid_employee_id(self, payroll_service):
        with pytest.raises(PayrollValidationError):
            await payroll_service.generate("not-a-uuid", 3, 2024)

    async def test_married_employee_uses_married_threshold(
        self, session, payroll_service, rates
    ):
        married = Employee(
            employee_number="EMP-002",
            full_name="Siti Rahma",
            marital_status="married",
            join_date=date(2020, 5, 4),
        )
        session.add(married)
        await session.flush()
        await CompensationService(session, rates).create_structure(
            CompensationCreate(
                employee_id=married.employee_id,
                basic_salary=Decimal("20000000"),
                effective_date=date(2024, 1, 1),
            )
        )

        record = await payroll_service.generate(married.employee_id, 6, 2024)

        # (3,000,000 + 121,500,000 * 15%) / 12
        assert record.income_tax == Decimal("1768750")


class TestQueries:
    async def test_get_missing(self, payroll_service):
        with pytest.raises(NotFoundError):
            await payroll_service.get(uuid4())

    async def test_listing(self, payroll_service, employee, compensation):
        feb = await payroll_service.generate(employee.employee_id, 2, 2024)
        mar = await payroll_service.generate(employee.employee_id, 3, 2024)
        dec = await payroll_service.generate(employee.employee_id, 12, 2023)

        by_employee = await payroll_service.list_by_employee(employee.employee_id)
        assert [r.payroll_id for r in by_employee] == [mar.payroll_id, feb.payroll_id, dec.payroll_id]

        everything = await payroll_service.list_all()
        assert len(everything) == 3

        march = await payroll_service.list_by_period(3, 2024)
        assert [r.payroll_id for r in march] == [mar.payroll_id]

        assert await payroll_service.list_by_period(1, 2024) == []

    async def test_list_paid_by_employee(self, payroll_service, employee, compensation):
        feb = await payroll_service.generate(employee.employee_id, 2, 2024)
        await payroll_service.generate(employee.employee_id, 3, 2024)

        assert await payroll_service.list_paid_by_employee(employee.employee_id) == []

        await payroll_service.transition(feb.payroll_id, "processed")
        await payroll_service.transition(feb.payroll_id, "paid")

        paid = await payroll_service.list_paid_by_employee(employee.employee_id)
        assert [r.payroll_id for r in paid] == [feb.payroll_id]


class TestUpdate:
    async def test_adjustments_recompute_totals(
        self, payroll_service, employee, compensation, march_attendance
    ):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        updated = await payroll_service.update(
            record.payroll_id,
            PayrollAdjustment(thr=Decimal("999999.5"), other_deductions=Decimal("50000")),
        )

        # 11,375,723 + 999,999.5 rounds half up
        assert updated.gross_salary == Decimal("12375723")
        # 931,358 + 50,000
        assert updated.total_deductions == Decimal("981358")
        # 12,375,722.5 - 981,358
        assert updated.net_salary == Decimal("11394365")
        # Statutory figures are not recomputed
        assert updated.income_tax == Decimal("531358")
        assert updated.health_deduction == Decimal("100000")

    async def test_overtime_override(self, payroll_service, employee, compensation, march_attendance):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        updated = await payroll_service.update(record.payroll_id, {"overtime_pay": "0"})

        assert updated.overtime_pay == Decimal("0")
        assert updated.gross_salary == Decimal("11000000")
        assert updated.net_salary == Decimal("10068642")

    async def test_notes_through_update(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        updated = await payroll_service.update(record.payroll_id, {"notes": "bonus pending"})

        assert updated.notes == "bonus pending"
        assert updated.gross_salary == record.gross_salary

    async def test_processed_can_be_adjusted(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.transition(record.payroll_id, "processed")

        updated = await payroll_service.update(record.payroll_id, {"thr": "1000000"})

        assert updated.gross_salary == Decimal("12000000")

    async def test_paid_rejects_update(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.transition(record.payroll_id, "processed")
        await payroll_service.transition(record.payroll_id, "paid")

        with pytest.raises(ConflictError):
            await payroll_service.update(record.payroll_id, {"thr": "1000000"})

        assert record.thr == Decimal("0")

    async def test_locked_fields_rejected(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        with pytest.raises(PayrollValidationError):
            await payroll_service.update(record.payroll_id, {"income_tax": "0"})

    async def test_adjustment_fields_match_record(self):
        adjustable = set(PayrollAdjustment.model_fields) - {"notes"}

        assert adjustable == PayrollRecord.ADJUSTABLE_FIELDS
        assert PayrollRecord.LOCKED_FIELDS.isdisjoint(PayrollRecord.ADJUSTABLE_FIELDS)

    async def test_update_refuses_fields_outside_adjustable_set(
        self, monkeypatch, payroll_service, employee, compensation
    ):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        monkeypatch.setattr(PayrollRecord, "ADJUSTABLE_FIELDS", frozenset({"overtime_pay"}))

        with pytest.raises(PayrollValidationError, match="thr"):
            await payroll_service.update(record.payroll_id, {"thr": "1000000"})

        assert record.thr == Decimal("0")

    async def test_negative_adjustment_rejected(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        with pytest.raises(PayrollValidationError):
            await payroll_service.update(record.payroll_id, {"other_deductions": "-1"})


class TestAnnotate:
    async def test_annotate_paid_record(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.transition(record.payroll_id, "processed")
        await payroll_service.transition(record.payroll_id, "paid")

        annotated = await payroll_service.annotate(record.payroll_id, "transferred via BCA")

        assert annotated.notes == "transferred via BCA"
        assert annotated.status == "paid"


class TestTransition:
    async def test_full_lifecycle(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        processed = await payroll_service.transition(record.payroll_id, "processed")
        assert processed.status == "processed"
        assert processed.paid_at is None

        paid = await payroll_service.transition(record.payroll_id, "paid")
        assert paid.status == "paid"
        assert paid.paid_at is not None

    async def test_draft_cannot_jump_to_paid(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        with pytest.raises(InvalidTransitionError):
            await payroll_service.transition(record.payroll_id, "paid")

        assert record.status == "draft"

    async def test_paid_rejects_transition(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.transition(record.payroll_id, "processed")
        await payroll_service.transition(record.payroll_id, "paid")

        with pytest.raises(ConflictError):
            await payroll_service.transition(record.payroll_id, "processed")

    async def test_unknown_status(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        with pytest.raises(PayrollValidationError):
            await payroll_service.transition(record.payroll_id, "approved")


class TestDelete:
    async def test_delete_draft(self, session, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)

        await payroll_service.delete(record.payroll_id)

        assert await _count_records(session) == 0
        with pytest.raises(NotFoundError):
            await payroll_service.get(record.payroll_id)

    async def test_processed_rejects_delete(self, session, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.transition(record.payroll_id, "processed")

        with pytest.raises(ConflictError):
            await payroll_service.delete(record.payroll_id)

        assert await _count_records(session) == 1

    async def test_paid_rejects_delete(self, session, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.transition(record.payroll_id, "processed")
        await payroll_service.transition(record.payroll_id, "paid")

        with pytest.raises(ConflictError):
            await payroll_service.delete(record.payroll_id)

        assert await _count_records(session) == 1

    async def test_regenerate_after_delete(self, session, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        await payroll_service.delete(record.payroll_id)

        again = await payroll_service.generate(employee.employee_id, 3, 2024)

        assert again.payroll_id != record.payroll_id
        assert await _count_records(session) == 1


class TestEstimateTHR:
    async def test_full_year(self, payroll_service, employee, compensation):
        estimate = await payroll_service.estimate_thr(employee.employee_id, date(2024, 3, 15))

        assert estimate.months_worked == 26
        assert estimate.thr == Decimal("10000000")

    async def test_pro_rata(self, session, payroll_service, employee, compensation):
        employee.join_date = date(2023, 9, 1)
        await session.flush()

        estimate = await payroll_service.estimate_thr(employee.employee_id, date(2024, 3, 1))

        assert estimate.months_worked == 6
        assert estimate.thr == Decimal("5000000")

    async def test_applied_through_update(self, payroll_service, employee, compensation):
        record = await payroll_service.generate(employee.employee_id, 3, 2024)
        estimate = await payroll_service.estimate_thr(employee.employee_id, date(2024, 3, 15))

        updated = await payroll_service.update(record.payroll_id, {"thr": estimate.thr})

        assert updated.thr == Decimal("10000000")
        assert updated.gross_salary == Decimal("21000000")

    async def test_missing_salary(self, payroll_service, employee):
        with pytest.raises(NotFoundError):
            await payroll_service.estimate_thr(employee.employee_id)
