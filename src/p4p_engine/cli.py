"""P4P Command Line Interface.

Provides operational tools for:
- Schema creation
- Performance pay calculation (assignment, job, all completed jobs)
- Job completion
- Pay period lookups and payroll reports
- Compliance and achievement analysis

Usage:
    python -m p4p_engine init-db
    python -m p4p_engine calculate-job --job-id X
    python -m p4p_engine recalculate
    python -m p4p_engine payroll-report --date 2024-03-15
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime
from typing import Any, Callable, Coroutine
from uuid import UUID

from pydantic import BaseModel

from p4p_engine.analyzers.achievements import AchievementAnalyzer, default_registry
from p4p_engine.analyzers.compliance import P4PComplianceAnalyzer
from p4p_engine.calculators.engine import P4PEngine
from p4p_engine.calculators.pay_period import (
    period_containing,
    periods_for_year,
    summarize_period,
)
from p4p_engine.config import get_settings
from p4p_engine.database import create_schema, dispose_engine, get_session
from p4p_engine.exceptions import P4PError
from p4p_engine.repository import SqlAlchemyP4PRepository
from p4p_engine.schemas import (
    AchievementResultResponse,
    BatchSummaryResponse,
    ComplianceReportResponse,
    EmployeePeriodSummaryResponse,
    P4PResultResponse,
    PayPeriodResponse,
    PayPeriodSummaryResponse,
    PayrollReportResponse,
)
from p4p_engine.services.job_service import JobService
from p4p_engine.services.reporting_service import ReportingService


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_datetime(s: str) -> datetime:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class P4PCli:
    """P4P Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m p4p_engine",
            description="Pay-for-performance calculation tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        # calculate-assignment command
        calc_assignment = subparsers.add_parser(
            "calculate-assignment",
            help="Calculate performance pay for one assignment",
        )
        calc_assignment.add_argument(
            "--assignment-id",
            type=parse_uuid,
            required=True,
            help="Assignment ID",
        )

        # calculate-job command
        calc_job = subparsers.add_parser(
            "calculate-job",
            help="Calculate performance pay for every assignment of a job",
        )
        calc_job.add_argument("--job-id", type=parse_uuid, required=True, help="Job ID")

        subparsers.add_parser(
            "recalculate",
            help="Recalculate all completed jobs",
        )

        # complete-job command
        complete = subparsers.add_parser(
            "complete-job",
            help="Mark a job completed and calculate its performance pay",
        )
        complete.add_argument("--job-id", type=parse_uuid, required=True, help="Job ID")
        complete.add_argument(
            "--completed-at",
            type=parse_datetime,
            help="Completion timestamp (ISO format, default: now)",
        )

        # pay-period command
        pay_period = subparsers.add_parser(
            "pay-period",
            help="Show the pay period containing a date",
        )
        pay_period.add_argument(
            "--date",
            type=parse_date,
            help="Date to look up (default: today)",
        )

        # periods command
        periods = subparsers.add_parser(
            "periods",
            help="List the pay periods of a year",
        )
        periods.add_argument(
            "--year",
            type=int,
            default=date.today().year,
            help="Calendar year (default: current year)",
        )

        # payroll-report command
        report = subparsers.add_parser(
            "payroll-report",
            help="Per-employee pay for a pay period",
        )
        report.add_argument(
            "--date",
            type=parse_date,
            help="Any date inside the pay period (default: today)",
        )
        report.add_argument(
            "--employee-id",
            type=parse_uuid,
            help="Report a single employee",
        )
        report.add_argument(
            "--include-inactive",
            action="store_true",
            help="Include inactive employees",
        )

        subparsers.add_parser(
            "compliance",
            help="Check stored P4P against minimum wage and recalculation",
        )

        # achievements command
        achievements = subparsers.add_parser(
            "achievements",
            help="Evaluate weekly achievements",
        )
        achievements.add_argument(
            "--week-of",
            type=parse_date,
            help="Any date inside the week (default: today)",
        )
        achievements.add_argument(
            "--employee-id",
            type=parse_uuid,
            help="Evaluate a single employee (all rules, earned or not)",
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
        handlers: dict[str, Callable[[argparse.Namespace], Coroutine[Any, Any, int]]] = {
            "init-db": self._cmd_init_db,
            "calculate-assignment": self._cmd_calculate_assignment,
            "calculate-job": self._cmd_calculate_job,
            "recalculate": self._cmd_recalculate,
            "complete-job": self._cmd_complete_job,
            "pay-period": self._cmd_pay_period,
            "periods": self._cmd_periods,
            "payroll-report": self._cmd_payroll_report,
            "compliance": self._cmd_compliance,
            "achievements": self._cmd_achievements,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(self._run_handler(handler, parsed))
        except P4PError as e:
            print(f"Error [{e.code}]: {e}", file=sys.stderr)
            return 2

    async def _run_handler(
        self,
        handler: Callable[[argparse.Namespace], Coroutine[Any, Any, int]],
        args: argparse.Namespace,
    ) -> int:
        try:
            return await handler(args)
        finally:
            await dispose_engine()

    def _emit(self, payload: BaseModel | list[BaseModel]) -> None:
        if isinstance(payload, list):
            print("[" + ",\n".join(p.model_dump_json(indent=2) for p in payload) + "]")
        else:
            print(payload.model_dump_json(indent=2))

    # ===== Commands =====

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create database tables."""
        await create_schema()
        print("Schema created.")
        return 0

    async def _cmd_calculate_assignment(self, args: argparse.Namespace) -> int:
        """Calculate one assignment."""
        async with get_session() as session:
            engine = P4PEngine(SqlAlchemyP4PRepository(session))
            result = await engine.calculate_for_assignment(args.assignment_id)
            self._emit(P4PResultResponse.model_validate(result))
        return 0

    async def _cmd_calculate_job(self, args: argparse.Namespace) -> int:
        """Calculate one job."""
        async with get_session() as session:
            engine = P4PEngine(SqlAlchemyP4PRepository(session))
            results = await engine.calculate_for_job(args.job_id)
            self._emit([P4PResultResponse.model_validate(r) for r in results])
        return 0

    async def _cmd_recalculate(self, args: argparse.Namespace) -> int:
        """Recalculate all completed jobs."""
        async with get_session() as session:
            engine = P4PEngine(SqlAlchemyP4PRepository(session))
            summary = await engine.recalculate_all_completed_jobs()
            self._emit(BatchSummaryResponse.model_validate(summary))
        return 1 if summary.jobs_failed else 0

    async def _cmd_complete_job(self, args: argparse.Namespace) -> int:
        """Complete a job."""
        async with get_session() as session:
            service = JobService(SqlAlchemyP4PRepository(session))
            results = await service.complete_job(args.job_id, now=args.completed_at)
            self._emit([P4PResultResponse.model_validate(r) for r in results])
        return 0

    async def _cmd_pay_period(self, args: argparse.Namespace) -> int:
        """Show a pay period."""
        summary = summarize_period(args.date or date.today())
        self._emit(
            PayPeriodSummaryResponse(
                period=PayPeriodResponse.from_period(summary.period),
                progress_percent=summary.progress_percent,
                working_days_total=summary.working_days_total,
                working_days_remaining=summary.working_days_remaining,
                is_current_period=summary.is_current_period,
            )
        )
        return 0

    async def _cmd_periods(self, args: argparse.Namespace) -> int:
        """List pay periods of a year."""
        self._emit([PayPeriodResponse.from_period(p) for p in periods_for_year(args.year)])
        return 0

    async def _cmd_payroll_report(self, args: argparse.Namespace) -> int:
        """Payroll report for a pay period."""
        period = period_containing(args.date or date.today())
        async with get_session() as session:
            service = ReportingService(SqlAlchemyP4PRepository(session))
            if args.employee_id:
                summary = await service.employee_period_summary(args.employee_id, period)
                self._emit(EmployeePeriodSummaryResponse.model_validate(summary))
                return 0

            report = await service.payroll_report(
                period, include_inactive=args.include_inactive
            )
            self._emit(
                PayrollReportResponse(
                    period=PayPeriodResponse.from_period(period),
                    total_hours=report.total_hours,
                    total_pay=report.total_pay,
                    total_supplement=report.total_supplement,
                    rows=[
                        EmployeePeriodSummaryResponse.model_validate(r) for r in report.rows
                    ],
                )
            )
        return 0

    async def _cmd_compliance(self, args: argparse.Namespace) -> int:
        """P4P compliance report."""
        async with get_session() as session:
            analyzer = P4PComplianceAnalyzer(SqlAlchemyP4PRepository(session))
            report = await analyzer.analyze()
            self._emit(ComplianceReportResponse.model_validate(report))
        return 0

    async def _cmd_achievements(self, args: argparse.Namespace) -> int:
        """Weekly achievements."""
        week_of = args.week_of or date.today()
        async with get_session() as session:
            analyzer = AchievementAnalyzer(
                SqlAlchemyP4PRepository(session), default_registry()
            )
            if args.employee_id:
                results = await analyzer.evaluate_employee(args.employee_id, week_of)
            else:
                earned = await analyzer.evaluate_week(week_of)
                results = [r for rows in earned.values() for r in rows]
            self._emit([AchievementResultResponse.model_validate(r) for r in results])
        return 0


def main() -> None:
    """CLI entry point."""
    sys.exit(P4PCli().run())


if __name__ == "__main__":
    main()
