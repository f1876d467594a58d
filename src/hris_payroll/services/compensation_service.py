"""Compensation structures and current-salary resolution."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.bpjs import calculate_bpjs
from hris_payroll.calculators.rate_tables import StatutoryRateTables
from hris_payroll.exceptions import NotFoundError
from hris_payroll.models import CompensationStructure, Employee
from hris_payroll.schemas import CompensationCreate, CompensationUpdate

logger = logging.getLogger(__name__)


class CompensationService:
    """Service for employee compensation structures.

    Contribution amounts are snapshotted onto the structure when it is
    created and whenever its basic salary changes. Payroll generation reads
    the snapshot; it never recomputes contributions.
    """

    def __init__(self, session: AsyncSession, rates: StatutoryRateTables):
        self.session = session
        self.rates = rates

    async def resolve_current(self, employee_id: UUID) -> CompensationStructure:
        """Latest structure by effective date.

        The payroll period is not considered: the same structure is returned
        whether it predates or postdates the period being computed.
        """
        result = await self.session.execute(
            select(CompensationStructure)
            .where(CompensationStructure.employee_id == employee_id)
            .order_by(
                CompensationStructure.effective_date.desc(),
                CompensationStructure.created_at.desc(),
            )
            .limit(1)
        )
        structure = result.scalar_one_or_none()
        if structure is None:
            raise NotFoundError(
                "Compensation for employee", employee_id, hint="please set salary first"
            )
        return structure

    async def get_structure(self, compensation_id: UUID) -> CompensationStructure:
        structure = await self.session.get(CompensationStructure, compensation_id)
        if structure is None:
            raise NotFoundError("Compensation structure", compensation_id)
        return structure

    async def list_for_employee(self, employee_id: UUID) -> list[CompensationStructure]:
        """All structures for an employee, newest effective date first."""
        result = await self.session.execute(
            select(CompensationStructure)
            .where(CompensationStructure.employee_id == employee_id)
            .order_by(CompensationStructure.effective_date.desc())
        )
        return list(result.scalars().all())

    async def create_structure(self, data: CompensationCreate) -> CompensationStructure:
        """Create a structure, computing its contribution snapshot."""
        employee = await self.session.get(Employee, data.employee_id)
        if employee is None:
            raise NotFoundError("Employee", data.employee_id)

        structure = CompensationStructure(
            employee_id=data.employee_id,
            basic_salary=data.basic_salary,
            transport_allowance=data.transport_allowance,
            meal_allowance=data.meal_allowance,
            housing_allowance=data.housing_allowance,
            position_allowance=data.position_allowance,
            effective_date=data.effective_date,
        )
        self._snapshot_contributions(structure)
        self.session.add(structure)
        await self.session.flush()

        logger.info(
            "Created compensation %s for employee %s effective %s",
            structure.compensation_id,
            structure.employee_id,
            structure.effective_date,
        )
        return structure

    async def update_structure(
        self, compensation_id: UUID, data: CompensationUpdate
    ) -> CompensationStructure:
        """Apply supplied fields; re-snapshot contributions if basic salary changed."""
        structure = await self.get_structure(compensation_id)

        changes = data.model_dump(exclude_none=True)
        for field_name, value in changes.items():
            setattr(structure, field_name, value)

        if "basic_salary" in changes:
            self._snapshot_contributions(structure)

        await self.session.flush()
        logger.info(
            "Updated compensation %s (%s)", compensation_id, ", ".join(sorted(changes)) or "no changes"
        )
        return structure

    def _snapshot_contributions(self, structure: CompensationStructure) -> None:
        contributions = calculate_bpjs(structure.basic_salary, self.rates.bpjs)
        structure.bpjs_kes_employee = contributions.health_employee
        structure.bpjs_kes_employer = contributions.health_employer
        structure.jht_employee = contributions.jht_employee
        structure.jht_employer = contributions.jht_employer
        structure.jkk = contributions.jkk
        structure.jkm = contributions.jkm
        structure.jp_employee = contributions.jp_employee
        structure.jp_employer = contributions.jp_employer
