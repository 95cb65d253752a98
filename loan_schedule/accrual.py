"""
Period Interest Accumulator

Splits a schedule period at every capital event inside it and accrues
day-prorated interest per segment. Nothing is rounded here; the schedule
builder rounds once per row.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Sequence, Tuple
import logging

from .currency import ZERO
from .dates import FIXED_DAYS_PER_MONTH, days_between
from .enums import InterestType
from .models import Loan, Transaction
from .principal import principal_at
from .timeline import Event, capital_events_in_period

logger = logging.getLogger("loan_schedule.accrual")

DAYS_PER_YEAR = Decimal('365')
MONTHS_PER_YEAR = Decimal('12')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class Segment:
    """Stretch of a period over which principal is constant"""
    start: date
    end: date
    days: int
    principal: Decimal
    interest: Decimal


@dataclass(frozen=True)
class PeriodInterest:
    """Unrounded interest for one period and how it was reached"""
    interest: Decimal
    calculation_days: int
    principal_at_start: Decimal
    segments: Tuple[Segment, ...]


def daily_rate(annual_rate: Decimal) -> Decimal:
    return annual_rate / HUNDRED / DAYS_PER_YEAR


def monthly_rate(annual_rate: Decimal) -> Decimal:
    return annual_rate / HUNDRED / MONTHS_PER_YEAR


class PeriodInterestAccumulator:
    """
    Accrues interest for ``[period_start, period_end)`` periods of one loan.

    Day-count mode charges ``principal * annual_rate / 100 / 365`` per day.
    Monthly-fixed mode treats the whole period as 365/12 days, i.e. one
    twelfth of the annual rate, shared across segments by their share of the
    calendar period. Flat loans accrue on the original principal for as long
    as any principal is outstanding.
    """

    def __init__(self, loan: Loan, transactions: Sequence[Transaction],
                 events: Sequence[Event]):
        self.loan = loan
        self.transactions = transactions
        self.events = events

    def _interest_base(self, segment_principal: Decimal) -> Decimal:
        # Nothing accrues once the ledger shows the loan repaid, flat or not
        if segment_principal <= ZERO:
            return ZERO
        if self.loan.interest_type == InterestType.FLAT:
            return self.loan.principal_amount
        return segment_principal

    def _segment_interest(self, base: Decimal, days: int, period_days: int,
                          monthly_fixed: bool) -> Decimal:
        if days <= 0 or base <= ZERO:
            return ZERO
        if monthly_fixed:
            return base * monthly_rate(self.loan.interest_rate) * Decimal(days) / Decimal(period_days)
        return base * daily_rate(self.loan.interest_rate) * Decimal(days)

    def accrue(self, period_start: date, period_end: date,
               monthly_fixed: bool = False) -> PeriodInterest:
        """Walk the segments of one period and sum their interest"""
        principal_start = principal_at(self.loan, self.transactions, period_start)
        period_days = days_between(period_start, period_end)

        segments: List[Segment] = []
        segment_start = period_start
        segment_principal = principal_start

        boundaries: List[Tuple[date, Decimal]] = [
            (event.date, event.signed_amount)
            for event in capital_events_in_period(self.events, period_start, period_end)
        ]
        boundaries.append((period_end, ZERO))

        for boundary, step in boundaries:
            days = max(0, days_between(segment_start, boundary))
            if days > 0:
                interest = self._segment_interest(
                    self._interest_base(segment_principal), days, period_days, monthly_fixed
                )
                segments.append(Segment(
                    start=segment_start,
                    end=boundary,
                    days=days,
                    principal=segment_principal,
                    interest=interest,
                ))
                logger.debug(
                    "Segment %s to %s, %d days, principal=%s, interest=%s",
                    segment_start, boundary, days, segment_principal, interest
                )
            segment_principal = max(ZERO, segment_principal + step)
            segment_start = boundary

        if monthly_fixed:
            calculation_days = int(FIXED_DAYS_PER_MONTH.to_integral_value(rounding=ROUND_HALF_UP))
        else:
            calculation_days = period_days

        return PeriodInterest(
            interest=sum((segment.interest for segment in segments), ZERO),
            calculation_days=calculation_days,
            principal_at_start=principal_start,
            segments=tuple(segments),
        )


def accrue_period_interest(loan: Loan, transactions: Sequence[Transaction],
                           events: Iterable[Event], period_start: date, period_end: date,
                           monthly_fixed: bool = False) -> PeriodInterest:
    """Convenience wrapper for a single period"""
    accumulator = PeriodInterestAccumulator(loan, transactions, list(events))
    return accumulator.accrue(period_start, period_end, monthly_fixed)
