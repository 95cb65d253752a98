"""
Schedule Engine Module

Regenerates a loan's repayment schedule from its ledger and keeps the
loan-level aggregates in step. Work on one loan is serialized with a per-loan
lock; the delete, insert and loan update commit together or not at all.
"""

from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional
import logging
import threading

from .config import get_config
from .currency import ZERO, round_currency
from .dates import DateLike, to_date
from .duration import DurationPolicy
from .enums import LoanStatus, OverpaymentOption, ScheduleStatus, TransactionType
from .exceptions import InvalidStateError, LoanNotFoundError, ProductNotFoundError
from .ledger import Ledger
from .logging_config import log_action
from .models import Loan, LoanDraft, LoanProduct, ScheduleRow, new_record_id
from .principal import principal_state
from .repository import ScheduleRepository
from .schedule import build_schedule
from .storage import StorageInterface
from .waterfall import apply_payment_waterfall

logger = logging.getLogger("loan_schedule.engine")

INITIAL_DISBURSEMENT_REFERENCE = "initial"


@dataclass(frozen=True)
class ScheduleSummary:
    total_interest: Decimal
    total_repayable: Decimal
    duration: int
    outstanding_principal: Decimal


@dataclass(frozen=True)
class ScheduleResult:
    loan: Loan
    schedule: List[ScheduleRow]
    summary: ScheduleSummary


@dataclass(frozen=True)
class ReapplyResult:
    principal_paid: Decimal
    interest_paid: Decimal
    repayments_applied: int
    rows_updated: int


class _LoanLock:
    """Lock for one loan and how many callers are holding or waiting on it"""

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


def validate_terms(loan: Loan) -> None:
    """Reject loans whose terms cannot produce a schedule"""
    if loan.start_date is None:
        raise InvalidStateError(f"Loan {loan.id} has no start date")
    if loan.principal_amount < ZERO:
        raise InvalidStateError(f"Loan {loan.id} has negative principal {loan.principal_amount}")
    if loan.interest_rate is None or loan.interest_rate < ZERO:
        raise InvalidStateError(f"Loan {loan.id} has invalid interest rate {loan.interest_rate}")
    if loan.duration is None or loan.duration <= 0:
        raise InvalidStateError(f"Loan {loan.id} has non-positive duration {loan.duration}")
    if loan.interest_type is None or loan.period is None:
        raise InvalidStateError(f"Loan {loan.id} has no interest type or period")


def summarize(rows: List[ScheduleRow], outstanding: Decimal, exit_fee: Decimal,
              duration: int) -> ScheduleSummary:
    total_interest = round_currency(sum((row.interest_amount for row in rows), ZERO))
    return ScheduleSummary(
        total_interest=total_interest,
        total_repayable=round_currency(total_interest + outstanding + exit_fee),
        duration=duration,
        outstanding_principal=round_currency(outstanding),
    )


class ScheduleEngine:
    """
    Orchestrates schedule regeneration, origination and payment re-application.

    Args:
        storage: Storage backend shared by the ledger and schedule repository
        duration_policy: Extension rules; built from configuration when omitted
        today: Clock used as the default as-of date
    """

    def __init__(self, storage: StorageInterface,
                 duration_policy: Optional[DurationPolicy] = None,
                 today: Optional[Callable[[], date]] = None):
        self.storage = storage
        self.ledger = Ledger(storage)
        self.repository = ScheduleRepository(storage)
        self.duration_policy = duration_policy or DurationPolicy.from_config()
        self.today = today or date.today

        self._locks: Dict[str, _LoanLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _lock_for(self, loan_id: str):
        """Hold the loan's lock; the registry entry goes once nobody wants it"""
        with self._locks_guard:
            entry = self._locks.get(loan_id)
            if entry is None:
                entry = self._locks[loan_id] = _LoanLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[loan_id]

    def _load_terms(self, loan_id: str) -> Loan:
        loan = self.ledger.get_loan(loan_id)
        if not loan:
            raise LoanNotFoundError(f"Loan {loan_id} not found")

        product = self.ledger.get_product(loan.product_id)
        if not product:
            raise ProductNotFoundError(
                f"Loan product {loan.product_id} for loan {loan_id} not found"
            )

        terms = loan.with_product_terms(product)
        validate_terms(terms)
        return terms

    def _needs_initial_disbursement(self, loan: Loan) -> bool:
        # Deleted entries count; a reversed initial advance is not re-created
        if loan.principal_amount <= ZERO:
            return False
        return not any(
            t.transaction_type == TransactionType.DISBURSEMENT
            for t in self.ledger.list_transactions(loan.id, include_deleted=True)
        )

    def _record_initial_disbursement(self, loan: Loan) -> None:
        # Dated at the start date, so replay does not treat it as a further advance
        self.ledger.record_disbursement(
            loan.id, loan.principal_amount, loan.start_date, reference=INITIAL_DISBURSEMENT_REFERENCE
        )

    def regenerate_loan_schedule(self, loan_id: str, duration: Optional[int] = None,
                                 end_date: Optional[DateLike] = None,
                                 skip_disbursement: bool = False,
                                 correlation_id: Optional[str] = None) -> ScheduleResult:
        """
        Replace the loan's schedule with one derived from its current ledger.

        Args:
            loan_id: Loan to regenerate
            duration: Explicit number of periods, used verbatim
            end_date: Date the schedule must reach (defaults to today)
            skip_disbursement: Do not record the initial disbursement when the
                ledger has none yet
            correlation_id: Request identifier for the log trail

        Returns:
            ScheduleResult with the updated loan, new rows and totals

        Raises:
            LoanNotFoundError, ProductNotFoundError: before anything is written
            InvalidStateError: loan terms cannot produce a schedule
        """
        if duration is not None and duration <= 0:
            raise InvalidStateError(f"Duration must be positive, got {duration}")

        with self._lock_for(loan_id):
            terms = self._load_terms(loan_id)
            transactions = self.ledger.list_transactions(loan_id)
            as_of = to_date(end_date) if end_date else self.today()
            state = principal_state(terms, transactions)
            schedule_duration = self.duration_policy.resolve(
                terms, state.outstanding, as_of, explicit_duration=duration
            )
            rows = build_schedule(terms, transactions, schedule_duration)
            summary = summarize(rows, state.outstanding, terms.exit_fee, schedule_duration)

            loan_fields = {
                'interest_rate': terms.interest_rate,
                'interest_type': terms.interest_type,
                'period': terms.period,
                'interest_alignment': terms.interest_alignment,
                'interest_calculation_method': terms.interest_calculation_method,
                'duration': schedule_duration,
                'total_interest': summary.total_interest,
                'total_repayable': summary.total_repayable,
            }
            record_initial = not skip_disbursement and self._needs_initial_disbursement(terms)
            with self.storage.atomic():
                self.repository.replace_schedule(loan_id, rows)
                self.repository.update_loan(loan_id, loan_fields)
                if record_initial:
                    self._record_initial_disbursement(terms)

        log_action(
            logger, "info",
            f"Regenerated {len(rows)} schedule rows",
            loan_id=loan_id,
            action="regenerate_schedule",
            correlation_id=correlation_id,
            extra={
                "duration": schedule_duration,
                "previous_duration": terms.duration,
                "initial_disbursement_recorded": record_initial,
                "as_of": as_of.isoformat(),
                "total_interest": str(summary.total_interest),
                "total_repayable": str(summary.total_repayable),
            }
        )

        loan = replace(
            terms,
            duration=schedule_duration,
            total_interest=summary.total_interest,
            total_repayable=summary.total_repayable,
        )
        return ScheduleResult(loan=loan, schedule=rows, summary=summary)

    def apply_schedule_to_new_loan(self, draft: LoanDraft, product: LoanProduct,
                                   duration: Optional[int] = None,
                                   auto_extend: Optional[bool] = None,
                                   skip_disbursement: bool = False,
                                   correlation_id: Optional[str] = None) -> ScheduleResult:
        """
        Originate a loan from a draft and product, with its first schedule.

        The product's terms are copied onto the loan; no ledger entries exist
        yet, so the schedule runs on the original principal throughout.
        The initial disbursement is recorded on the ledger alongside it
        unless ``skip_disbursement`` is set.
        """
        config = get_config()
        if duration is None:
            duration = config.default_loan_duration
        if auto_extend is None:
            auto_extend = config.default_auto_extend

        now = datetime.now(timezone.utc)
        loan = Loan(
            id=draft.id or new_record_id(),
            created_at=now,
            updated_at=now,
            product_id=product.id,
            principal_amount=draft.principal_amount,
            start_date=draft.start_date,
            duration=duration,
            interest_rate=product.interest_rate,
            interest_type=product.interest_type,
            period=product.period,
            interest_alignment=product.interest_alignment,
            interest_calculation_method=product.interest_calculation_method,
            auto_extend=auto_extend,
            original_duration=duration,
            exit_fee=draft.exit_fee,
            status=LoanStatus.LIVE,
            currency=draft.currency,
            borrower_name=draft.borrower_name,
            loan_number=draft.loan_number,
        )
        validate_terms(loan)

        rows = build_schedule(loan, [], duration)
        summary = summarize(rows, loan.principal_amount, loan.exit_fee, duration)
        loan.total_interest = summary.total_interest
        loan.total_repayable = summary.total_repayable

        with self._lock_for(loan.id):
            with self.storage.atomic():
                self.ledger.save_loan(loan)
                self.repository.replace_schedule(loan.id, rows)
                if not skip_disbursement and loan.principal_amount > ZERO:
                    self._record_initial_disbursement(loan)

        log_action(
            logger, "info",
            f"Originated loan with {len(rows)} schedule rows",
            loan_id=loan.id,
            action="originate_loan",
            correlation_id=correlation_id,
            extra={
                "product_id": product.id,
                "principal_amount": str(loan.principal_amount),
                "duration": duration,
                "auto_extend": auto_extend,
            }
        )
        return ScheduleResult(loan=loan, schedule=rows, summary=summary)

    def reapply_repayments(self, loan_id: str,
                           overpayment_option: OverpaymentOption = OverpaymentOption.CREDIT,
                           correlation_id: Optional[str] = None) -> ReapplyResult:
        """
        Replay every repayment on the ledger through the payment waterfall.

        Row payment state is rebuilt from scratch, so the result depends only
        on the ledger and the current schedule. Each repayment is allocated
        on its own; money left over after the whole schedule is met is not
        carried to the next repayment.
        """
        with self._lock_for(loan_id):
            if not self.ledger.get_loan(loan_id):
                raise LoanNotFoundError(f"Loan {loan_id} not found")

            rows = [
                replace(row, principal_paid=ZERO, interest_paid=ZERO, status=ScheduleStatus.PENDING)
                for row in self.repository.get_schedule(loan_id)
            ]
            rows_by_id = {row.id: row for row in rows}
            repayments = [
                t for t in self.ledger.list_transactions(loan_id)
                if t.transaction_type == TransactionType.REPAYMENT
            ]

            principal_paid = ZERO
            interest_paid = ZERO
            for repayment in repayments:
                result = apply_payment_waterfall(
                    repayment.amount, list(rows_by_id.values()),
                    overpayment_option=overpayment_option,
                )
                for update in result.updates:
                    row = rows_by_id[update.row_id]
                    row.principal_paid = update.principal_paid
                    row.interest_paid = update.interest_paid
                    row.status = update.status
                principal_paid += result.principal_applied
                interest_paid += result.interest_applied

            with self.storage.atomic():
                for row in rows:
                    self.repository.update_row(row)
                self.repository.update_loan(loan_id, {
                    'principal_paid': round_currency(principal_paid),
                    'interest_paid': round_currency(interest_paid),
                })

        log_action(
            logger, "info",
            f"Re-applied {len(repayments)} repayments",
            loan_id=loan_id,
            action="reapply_repayments",
            correlation_id=correlation_id,
            extra={
                "principal_paid": str(round_currency(principal_paid)),
                "interest_paid": str(round_currency(interest_paid)),
            }
        )
        return ReapplyResult(
            principal_paid=round_currency(principal_paid),
            interest_paid=round_currency(interest_paid),
            repayments_applied=len(repayments),
            rows_updated=sum(1 for row in rows if row.total_paid > ZERO),
        )

    def get_schedule(self, loan_id: str) -> List[ScheduleRow]:
        if not self.ledger.get_loan(loan_id):
            raise LoanNotFoundError(f"Loan {loan_id} not found")
        return self.repository.get_schedule(loan_id)
