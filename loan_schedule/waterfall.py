"""
Payment Waterfall

Allocates a payment across schedule rows: oldest due date first, interest
before principal. Only the paid amounts and status of a row change; the
scheduled principal and interest stay as generated.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from .currency import ZERO, round_currency, to_decimal
from .enums import OverpaymentOption, ScheduleStatus
from .exceptions import InvalidStateError
from .models import ScheduleRow

PAID_TOLERANCE = Decimal('0.01')


@dataclass
class RowPaymentUpdate:
    """New payment state for one row, plus what this payment contributed"""
    row_id: str
    installment_number: int
    interest_paid: Decimal
    principal_paid: Decimal
    status: ScheduleStatus
    interest_applied: Decimal = ZERO
    principal_applied: Decimal = ZERO


@dataclass
class WaterfallResult:
    updates: List[RowPaymentUpdate] = field(default_factory=list)
    remaining_payment: Decimal = ZERO
    principal_reduction: Decimal = ZERO
    credit_amount: Decimal = ZERO

    @property
    def interest_applied(self) -> Decimal:
        return sum((u.interest_applied for u in self.updates), ZERO)

    @property
    def principal_applied(self) -> Decimal:
        return sum((u.principal_applied for u in self.updates), ZERO)


def _row_status(row: ScheduleRow) -> ScheduleStatus:
    if row.total_paid >= row.total_due - PAID_TOLERANCE:
        return ScheduleStatus.PAID
    if row.total_paid > ZERO:
        return ScheduleStatus.PARTIAL
    return row.status


def apply_payment_waterfall(payment: Decimal, rows: Sequence[ScheduleRow],
                            existing_credit: Decimal = ZERO,
                            overpayment_option: OverpaymentOption = OverpaymentOption.CREDIT,
                            as_of: Optional[date] = None) -> WaterfallResult:
    """
    Allocate ``payment`` (plus any credit held) to the schedule.

    Args:
        payment: Amount received
        rows: Current schedule rows; they are not modified
        existing_credit: Overpayment credit carried from earlier payments
        overpayment_option: What to do with money left after every due
            amount is met: hold it as credit, or pay future principal early
        as_of: When given, only rows due on or before this date count as
            due; later rows are reached only through principal reduction

    Returns:
        WaterfallResult with one update per row touched
    """
    if not isinstance(overpayment_option, OverpaymentOption):
        try:
            overpayment_option = OverpaymentOption(overpayment_option)
        except ValueError:
            raise InvalidStateError(f"Unknown overpayment option: {overpayment_option!r}")

    remaining = to_decimal(payment) + to_decimal(existing_credit)
    ordered = sorted(rows, key=lambda row: (row.due_date, row.installment_number))
    working: Dict[str, ScheduleRow] = {row.id: replace(row) for row in ordered}
    updates: Dict[str, RowPaymentUpdate] = {}

    def record(row: ScheduleRow, interest: Decimal, principal: Decimal) -> None:
        current = working[row.id]
        current.interest_paid += interest
        current.principal_paid += principal
        current.status = _row_status(current)

        update = updates.get(row.id)
        if update is None:
            update = RowPaymentUpdate(
                row_id=row.id,
                installment_number=row.installment_number,
                interest_paid=current.interest_paid,
                principal_paid=current.principal_paid,
                status=current.status,
            )
            updates[row.id] = update
        update.interest_paid = current.interest_paid
        update.principal_paid = current.principal_paid
        update.status = current.status
        update.interest_applied += interest
        update.principal_applied += principal

    # Scheduled dues, interest first
    for row in ordered:
        if remaining <= ZERO or (as_of is not None and row.due_date > as_of):
            break
        if row.status == ScheduleStatus.PAID:
            continue

        current = working[row.id]
        interest = min(remaining, current.interest_outstanding)
        remaining -= interest
        principal = min(remaining, current.principal_outstanding)
        remaining -= principal

        if interest > ZERO or principal > ZERO:
            record(row, interest, principal)

    principal_reduction = ZERO
    if remaining > ZERO and overpayment_option == OverpaymentOption.REDUCE_PRINCIPAL:
        for row in ordered:
            if remaining <= ZERO:
                break
            current = working[row.id]
            if current.status == ScheduleStatus.PAID:
                continue
            extra = min(remaining, current.principal_outstanding)
            if extra > ZERO:
                record(row, ZERO, extra)
                principal_reduction += extra
                remaining -= extra

    return WaterfallResult(
        updates=list(updates.values()),
        remaining_payment=round_currency(remaining),
        principal_reduction=round_currency(principal_reduction),
        credit_amount=round_currency(max(ZERO, remaining)),
    )
