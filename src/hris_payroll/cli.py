"""Payroll Command Line Interface.

Provides operational tools for:
- Schema creation
- Salary structures
- Payroll generation, adjustment and status changes
- THR estimates

Usage:
    python -m hris_payroll init-db
    python -m hris_payroll set-salary --employee-id X --basic-salary 10000000 --effective-date 2024-01-01
    python -m hris_payroll update-salary --compensation-id Z --basic-salary 12000000
    python -m hris_payroll list-salary --employee-id X
    python -m hris_payroll generate --employee-id X --month 3 --year 2024
    python -m hris_payroll list --month 3 --year 2024
    python -m hris_payroll transition --payroll-id Y --status processed
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Callable
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.config import get_settings
from hris_payroll.database import create_schema, dispose_engine, get_session
from hris_payroll.exceptions import PayrollError
from hris_payroll.models import PayrollRecord, PayrollStatus
from hris_payroll.schemas import (
    CompensationCreate,
    CompensationResponse,
    CompensationUpdate,
    PayrollAdjustment,
    PayrollRecordResponse,
    PayrollStatusRequest,
    parse_request,
)
from hris_payroll.services.compensation_service import CompensationService
from hris_payroll.services.payroll_service import PayrollService

logger = logging.getLogger(__name__)


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_amount(s: str) -> Decimal:
    """Parse a currency amount."""
    return Decimal(s)


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


def _records(records: list[PayrollRecord]) -> list[dict[str, Any]]:
    return [_dump(PayrollRecordResponse.model_validate(r)) for r in records]


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m hris_payroll",
            description="Statutory payroll tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        subparsers.add_parser("init-db", help="Create database tables")

        # set-salary command
        salary = subparsers.add_parser(
            "set-salary",
            help="Create a compensation structure for an employee",
        )
        salary.add_argument("--employee-id", type=parse_uuid, required=True)
        salary.add_argument("--basic-salary", type=parse_amount, required=True)
        salary.add_argument("--transport-allowance", type=parse_amount, default=Decimal("0"))
        salary.add_argument("--meal-allowance", type=parse_amount, default=Decimal("0"))
        salary.add_argument("--housing-allowance", type=parse_amount, default=Decimal("0"))
        salary.add_argument("--position-allowance", type=parse_amount, default=Decimal("0"))
        salary.add_argument(
            "--effective-date",
            type=parse_date,
            required=True,
            help="Date the structure takes effect (YYYY-MM-DD)",
        )

        # update-salary command
        update_salary = subparsers.add_parser(
            "update-salary",
            help="Change an existing compensation structure",
        )
        update_salary.add_argument("--compensation-id", type=parse_uuid, required=True)
        update_salary.add_argument("--basic-salary", type=parse_amount)
        update_salary.add_argument("--transport-allowance", type=parse_amount)
        update_salary.add_argument("--meal-allowance", type=parse_amount)
        update_salary.add_argument("--housing-allowance", type=parse_amount)
        update_salary.add_argument("--position-allowance", type=parse_amount)
        update_salary.add_argument("--effective-date", type=parse_date)

        # list-salary command
        list_salary = subparsers.add_parser(
            "list-salary",
            help="List an employee's compensation structures, newest first",
        )
        list_salary.add_argument("--employee-id", type=parse_uuid, required=True)

        # generate command
        generate = subparsers.add_parser(
            "generate",
            help="Generate a draft payroll record for an employee and period",
        )
        generate.add_argument("--employee-id", type=parse_uuid, required=True)
        generate.add_argument("--month", type=int, required=True)
        generate.add_argument("--year", type=int, required=True)

        # show command
        show = subparsers.add_parser("show", help="Show one payroll record")
        show.add_argument("--payroll-id", type=parse_uuid, required=True)

        # list command
        listing = subparsers.add_parser(
            "list",
            help="List payroll records (all, by employee, or by period)",
        )
        listing.add_argument("--employee-id", type=parse_uuid)
        listing.add_argument("--month", type=int)
        listing.add_argument("--year", type=int)
        listing.add_argument(
            "--paid",
            action="store_true",
            help="Only paid records (requires --employee-id)",
        )

        # adjust command
        adjust = subparsers.add_parser(
            "adjust",
            help="Apply overtime, THR or other deductions and recompute totals",
        )
        adjust.add_argument("--payroll-id", type=parse_uuid, required=True)
        adjust.add_argument("--overtime-pay", type=parse_amount)
        adjust.add_argument("--thr", type=parse_amount)
        adjust.add_argument("--other-deductions", type=parse_amount)
        adjust.add_argument("--notes", type=str)

        # annotate command
        annotate = subparsers.add_parser("annotate", help="Replace the notes on a record")
        annotate.add_argument("--payroll-id", type=parse_uuid, required=True)
        annotate.add_argument("--notes", type=str, required=True)

        # transition command
        transition = subparsers.add_parser(
            "transition",
            help="Move a record to its next status",
        )
        transition.add_argument("--payroll-id", type=parse_uuid, required=True)
        transition.add_argument(
            "--status",
            choices=[s.value for s in PayrollStatus],
            required=True,
        )

        # delete command
        delete = subparsers.add_parser("delete", help="Delete a draft record")
        delete.add_argument("--payroll-id", type=parse_uuid, required=True)

        # thr command
        thr = subparsers.add_parser("thr", help="Estimate THR for an employee")
        thr.add_argument("--employee-id", type=parse_uuid, required=True)
        thr.add_argument(
            "--as-of",
            type=parse_date,
            help="Reference date (YYYY-MM-DD, default: today)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        settings = get_settings()
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

        # Dispatch to command handler
        handlers: dict[str, Callable[..., Awaitable[Any]]] = {
            "set-salary": self._cmd_set_salary,
            "update-salary": self._cmd_update_salary,
            "list-salary": self._cmd_list_salary,
            "generate": self._cmd_generate,
            "show": self._cmd_show,
            "list": self._cmd_list,
            "adjust": self._cmd_adjust,
            "annotate": self._cmd_annotate,
            "transition": self._cmd_transition,
            "delete": self._cmd_delete,
            "thr": self._cmd_thr,
        }

        if parsed.command == "init-db":
            return asyncio.run(self._cmd_init_db())

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._execute(handler, parsed))

    async def _execute(
        self,
        handler: Callable[[AsyncSession, argparse.Namespace], Awaitable[Any]],
        args: argparse.Namespace,
    ) -> int:
        """Run a handler inside a session scope and print its JSON result."""
        try:
            async with get_session() as session:
                output = await handler(session, args)
        except PayrollError as e:
            logger.debug("Command %s failed", args.command, exc_info=True)
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        finally:
            await dispose_engine()

        print(json.dumps(output, indent=2))
        return 0

    async def _cmd_init_db(self) -> int:
        """Create all tables."""
        try:
            await create_schema()
        finally:
            await dispose_engine()
        print("Schema created.")
        return 0

    async def _cmd_set_salary(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        data = parse_request(
            CompensationCreate,
            {
                "employee_id": args.employee_id,
                "basic_salary": args.basic_salary,
                "transport_allowance": args.transport_allowance,
                "meal_allowance": args.meal_allowance,
                "housing_allowance": args.housing_allowance,
                "position_allowance": args.position_allowance,
                "effective_date": args.effective_date,
            },
        )
        service = PayrollService(session)
        structure = await CompensationService(session, service.rates).create_structure(data)
        return _dump(CompensationResponse.model_validate(structure))

    async def _cmd_update_salary(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        data = parse_request(
            CompensationUpdate,
            {
                "basic_salary": args.basic_salary,
                "transport_allowance": args.transport_allowance,
                "meal_allowance": args.meal_allowance,
                "housing_allowance": args.housing_allowance,
                "position_allowance": args.position_allowance,
                "effective_date": args.effective_date,
            },
        )
        service = PayrollService(session)
        structure = await CompensationService(session, service.rates).update_structure(
            args.compensation_id, data
        )
        return _dump(CompensationResponse.model_validate(structure))

    async def _cmd_list_salary(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        service = PayrollService(session)
        structures = await CompensationService(session, service.rates).list_for_employee(
            args.employee_id
        )
        return [_dump(CompensationResponse.model_validate(s)) for s in structures]

    async def _cmd_generate(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        record = await PayrollService(session).generate(args.employee_id, args.month, args.year)
        return _dump(PayrollRecordResponse.model_validate(record))

    async def _cmd_show(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        record = await PayrollService(session).get(args.payroll_id)
        return _dump(PayrollRecordResponse.model_validate(record))

    async def _cmd_list(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        service = PayrollService(session)

        if args.paid:
            if args.employee_id is None:
                self.parser.error("--paid requires --employee-id")
            return _records(await service.list_paid_by_employee(args.employee_id))
        if args.employee_id is not None:
            return _records(await service.list_by_employee(args.employee_id))
        if args.month is not None or args.year is not None:
            if args.month is None or args.year is None:
                self.parser.error("--month and --year must be given together")
            return _records(await service.list_by_period(args.month, args.year))
        return _records(await service.list_all())

    async def _cmd_adjust(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        adjustment = parse_request(
            PayrollAdjustment,
            {
                "overtime_pay": args.overtime_pay,
                "thr": args.thr,
                "other_deductions": args.other_deductions,
                "notes": args.notes,
            },
        )
        record = await PayrollService(session).update(args.payroll_id, adjustment)
        return _dump(PayrollRecordResponse.model_validate(record))

    async def _cmd_annotate(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        record = await PayrollService(session).annotate(args.payroll_id, args.notes)
        return _dump(PayrollRecordResponse.model_validate(record))

    async def _cmd_transition(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        request = parse_request(PayrollStatusRequest, {"status": args.status})
        record = await PayrollService(session).transition(args.payroll_id, request.status)
        return _dump(PayrollRecordResponse.model_validate(record))

    async def _cmd_delete(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        await PayrollService(session).delete(args.payroll_id)
        return {"deleted": str(args.payroll_id)}

    async def _cmd_thr(self, session: AsyncSession, args: argparse.Namespace) -> Any:
        estimate = await PayrollService(session).estimate_thr(args.employee_id, args.as_of)
        return _dump(estimate)


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
