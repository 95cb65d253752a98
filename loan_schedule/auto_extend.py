"""
Auto-Extend Runner

Batch job that keeps auto-extend schedules reaching the run date. Each loan
is handled on its own: a failure is logged, recorded in the report and the
run carries on with the next loan.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging
import time

from .dates import DateLike, to_date
from .engine import ScheduleEngine
from .logging_config import log_action
from .models import Loan

logger = logging.getLogger("loan_schedule.auto_extend")


@dataclass
class LoanExtensionOutcome:
    loan_id: str
    loan_number: Optional[str]
    status: str                 # "success", "failed" or "skipped"
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loan_id": self.loan_id,
            "loan_number": self.loan_number,
            "status": self.status,
            "message": self.message,
        }


@dataclass
class AutoExtendReport:
    end_date: date
    started_at: datetime
    finished_at: Optional[datetime] = None
    elapsed_ms: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    loans: List[LoanExtensionOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "end_date": self.end_date.isoformat(),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "elapsed_ms": self.elapsed_ms,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "loans": [outcome.to_dict() for outcome in self.loans],
        }


ProgressCallback = Callable[[Dict[str, Any]], None]


class AutoExtendRunner:
    """Regenerates every live auto-extend loan whose schedule ends too early"""

    def __init__(self, engine: ScheduleEngine):
        self.engine = engine

    def eligible_loans(self) -> List[Loan]:
        loans = [
            loan for loan in self.engine.ledger.list_loans()
            if loan.auto_extend and loan.is_live
        ]
        return sorted(loans, key=lambda loan: (loan.loan_number or "", loan.id))

    def _latest_due_date(self, loan_id: str) -> Optional[date]:
        rows = self.engine.repository.get_schedule(loan_id)
        if not rows:
            return None
        return max(row.due_date for row in rows)

    def run(self, end_date: Optional[DateLike] = None,
            on_progress: Optional[ProgressCallback] = None,
            correlation_id: Optional[str] = None) -> AutoExtendReport:
        """
        Extend every eligible loan to ``end_date`` (default today).

        Args:
            end_date: Date schedules must reach
            on_progress: Called before each loan with current/total/percent
            correlation_id: Request identifier for the log trail

        Returns:
            AutoExtendReport with per-loan outcomes
        """
        end_date = to_date(end_date) if end_date else self.engine.today()
        started = time.monotonic()
        report = AutoExtendReport(end_date=end_date, started_at=datetime.now(timezone.utc))

        loans = self.eligible_loans()
        log_action(
            logger, "info",
            f"Auto-extend run found {len(loans)} eligible loans",
            action="auto_extend_start",
            correlation_id=correlation_id,
            extra={"end_date": end_date.isoformat()}
        )

        for index, loan in enumerate(loans, start=1):
            if on_progress:
                on_progress({
                    "current": index,
                    "total": len(loans),
                    "loan": loan.loan_number or loan.id,
                    "percent": round(index * 100 / len(loans)),
                })

            latest_due = self._latest_due_date(loan.id)
            if latest_due is not None and latest_due >= end_date:
                report.skipped += 1
                report.loans.append(LoanExtensionOutcome(
                    loan_id=loan.id,
                    loan_number=loan.loan_number,
                    status="skipped",
                    message=f"Already extends to {latest_due.isoformat()}",
                ))
                continue

            report.processed += 1
            try:
                self.engine.regenerate_loan_schedule(
                    loan.id,
                    end_date=end_date,
                    skip_disbursement=True,
                    correlation_id=correlation_id,
                )
                self.engine.reapply_repayments(loan.id, correlation_id=correlation_id)
            except Exception as e:
                # Log error but continue with other loans
                report.failed += 1
                report.loans.append(LoanExtensionOutcome(
                    loan_id=loan.id,
                    loan_number=loan.loan_number,
                    status="failed",
                    message=str(e),
                ))
                logger.exception(
                    "Auto-extend failed for loan %s", loan.id,
                    extra={"loan_id": loan.id, "action": "auto_extend_loan",
                           "correlation_id": correlation_id}
                )
                continue

            report.succeeded += 1
            report.loans.append(LoanExtensionOutcome(
                loan_id=loan.id,
                loan_number=loan.loan_number,
                status="success",
                message=f"Extended to {end_date.isoformat()}",
            ))

        report.finished_at = datetime.now(timezone.utc)
        report.elapsed_ms = int((time.monotonic() - started) * 1000)

        log_action(
            logger, "info",
            "Auto-extend run complete",
            action="auto_extend_complete",
            correlation_id=correlation_id,
            extra={
                "processed": report.processed,
                "succeeded": report.succeeded,
                "failed": report.failed,
                "skipped": report.skipped,
                "elapsed_ms": report.elapsed_ms,
            }
        )
        return report
