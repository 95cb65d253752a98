"""
Event Timeline Module

Merges capital-affecting ledger entries with the schedule's due dates into a
single chronological stream. Capital events sort ahead of a due marker on the
same day, so a balance change is reflected before the period closes.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Union

from .dates import advance_period
from .enums import Period
from .models import Loan, Transaction
from .principal import is_capital_repayment, is_further_advance


class CapitalEventKind(Enum):
    CAPITAL_REPAYMENT = "capital_repayment"
    DISBURSEMENT = "disbursement"


@dataclass(frozen=True)
class CapitalEvent:
    """Ledger movement that changes principal outstanding"""
    date: date
    kind: CapitalEventKind
    amount: Decimal

    @property
    def signed_amount(self) -> Decimal:
        if self.kind == CapitalEventKind.CAPITAL_REPAYMENT:
            return -self.amount
        return self.amount


@dataclass(frozen=True)
class ScheduleDueEvent:
    """Boundary closing a schedule period"""
    date: date
    period_number: int


Event = Union[CapitalEvent, ScheduleDueEvent]


def _sort_key(event: Event):
    return (event.date, 0 if isinstance(event, CapitalEvent) else 1)


def capital_events(loan: Loan, transactions: Iterable[Transaction]) -> List[CapitalEvent]:
    """Capital events from the ledger, in date order"""
    events = []
    for transaction in transactions:
        if is_further_advance(loan, transaction):
            events.append(CapitalEvent(
                date=transaction.transaction_date,
                kind=CapitalEventKind.DISBURSEMENT,
                amount=transaction.amount,
            ))
        elif is_capital_repayment(transaction):
            events.append(CapitalEvent(
                date=transaction.transaction_date,
                kind=CapitalEventKind.CAPITAL_REPAYMENT,
                amount=transaction.principal_applied,
            ))
    # sorted() is stable, so same-day events keep ledger order
    return sorted(events, key=_sort_key)


def build_events(loan: Loan, transactions: Iterable[Transaction], period_count: int,
                 period: Period) -> List[Event]:
    """
    Full timeline for a schedule of ``period_count`` periods.

    Due markers fall on ``start_date + n`` months or weeks.
    """
    events: List[Event] = list(capital_events(loan, transactions))
    for period_number in range(1, period_count + 1):
        events.append(ScheduleDueEvent(
            date=advance_period(loan.start_date, period, period_number),
            period_number=period_number,
        ))
    return sorted(events, key=_sort_key)


def capital_events_in_period(events: Iterable[Event], period_start: date,
                             period_end: date) -> List[CapitalEvent]:
    """Capital events with ``period_start <= date < period_end``"""
    return [
        event for event in events
        if isinstance(event, CapitalEvent) and period_start <= event.date < period_end
    ]
