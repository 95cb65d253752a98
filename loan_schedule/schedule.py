"""
Schedule Row Assembler

Turns a loan, its ledger and a duration into repayment schedule rows, either
anchored on the loan's start date or on the 1st of each calendar month.

Balances always come from the ledger. Amortizing principal is priced on the
balance the schedule itself projects: ledger principal at the start of the
period less principal already scheduled since the ledger last moved.
"""

from datetime import date
from decimal import Decimal
from typing import List, Sequence, Tuple
import logging

from .accrual import PeriodInterest, PeriodInterestAccumulator
from .currency import ZERO, round_currency
from .dates import add_months, first_of_next_month, period_boundaries
from .enums import InterestAlignment, InterestCalculationMethod, InterestType, Period
from .models import Loan, ScheduleRow, Transaction
from .policies import InstallmentContext, policy_for
from .principal import principal_at
from .timeline import CapitalEvent, build_events

logger = logging.getLogger("loan_schedule.schedule")


class ScheduleBuilder:
    """
    Builds the full row set for one loan.

    Args:
        loan: Loan with its product terms resolved
        transactions: Non-deleted ledger entries for the loan
        duration: Number of periods to schedule
    """

    def __init__(self, loan: Loan, transactions: Sequence[Transaction], duration: int):
        self.loan = loan
        self.transactions = list(transactions)
        self.duration = duration
        self.policy = policy_for(loan.interest_type)

        events = build_events(loan, self.transactions, duration, loan.period)
        self.capital_dates = [event.date for event in events if isinstance(event, CapitalEvent)]
        self.accumulator = PeriodInterestAccumulator(loan, self.transactions, events)

    @property
    def is_monthly_first(self) -> bool:
        return (
            self.loan.interest_alignment == InterestAlignment.MONTHLY_FIRST
            and self.loan.period == Period.MONTHLY
        )

    @property
    def uses_monthly_fixed_interest(self) -> bool:
        return (
            self.loan.interest_calculation_method == InterestCalculationMethod.MONTHLY
            and self.loan.period == Period.MONTHLY
        )

    def build(self) -> List[ScheduleRow]:
        if self.is_monthly_first:
            periods = self._calendar_month_periods()
        else:
            periods = self._anniversary_periods()

        rows = []
        scheduled = ZERO
        repriced_from = self.loan.start_date
        for installment_number, (period_number, period_start, period_end) in enumerate(periods, start=1):
            # A ledger movement since the last re-pricing resets the projection
            if any(repriced_from <= d < period_start for d in self.capital_dates):
                scheduled = ZERO
                repriced_from = period_start

            row = self._assemble_row(
                installment_number, period_number, period_start, period_end,
                monthly_fixed=self.uses_monthly_fixed_interest and installment_number > 1,
                scheduled_principal=scheduled,
            )
            scheduled += row.principal_amount
            rows.append(row)

        logger.debug("Built %d schedule rows for loan %s", len(rows), self.loan.id)
        return rows

    def _anniversary_periods(self) -> List[Tuple[int, date, date]]:
        """Periods of ``start_date + n`` months or weeks"""
        periods = []
        for number in range(1, self.duration + 1):
            period_start, period_end = period_boundaries(self.loan.start_date, self.loan.period, number)
            periods.append((number, period_start, period_end))
        return periods

    def _calendar_month_periods(self) -> List[Tuple[int, date, date]]:
        """
        A stub to the next 1st (numbered 0), then ``duration`` calendar months.

        A loan starting on the 1st has no stub; its first month starts on the
        start date itself.
        """
        start = self.loan.start_date
        periods = []
        if start.day == 1:
            first_month = start
        else:
            first_month = first_of_next_month(start)
            periods.append((0, start, first_month))

        for number in range(1, self.duration + 1):
            month_start = add_months(first_month, number - 1)
            periods.append((number, month_start, add_months(month_start, 1)))
        return periods

    def _projected(self, accrued: PeriodInterest, scheduled_principal: Decimal) -> Tuple[Decimal, Decimal]:
        """Principal expected at period start and the interest it would carry"""
        ledger_principal = accrued.principal_at_start
        projected = max(ZERO, ledger_principal - scheduled_principal)
        if ledger_principal <= ZERO:
            return projected, ZERO
        return projected, accrued.interest * projected / ledger_principal

    def _assemble_row(self, installment_number: int, period_number: int,
                      period_start: date, period_end: date, monthly_fixed: bool,
                      scheduled_principal: Decimal = ZERO) -> ScheduleRow:
        accrued = self.accumulator.accrue(period_start, period_end, monthly_fixed)
        principal_end = principal_at(self.loan, self.transactions, period_end)

        if period_number == 0:
            # Stub up to the first calendar month carries interest only
            principal_due = ZERO
        else:
            projected_principal, projected_interest = self._projected(accrued, scheduled_principal)
            principal_due = self.policy.principal_due(InstallmentContext(
                period_number=period_number,
                duration=self.duration,
                period=self.loan.period,
                annual_rate=self.loan.interest_rate,
                principal_at_start=projected_principal,
                principal_at_end=principal_end,
                interest=projected_interest,
            ))

        if self.loan.interest_type == InterestType.FLAT:
            calculation_principal = self.loan.principal_amount
        else:
            calculation_principal = accrued.principal_at_start

        currency = self.loan.currency
        principal_amount = round_currency(principal_due, currency)
        interest_amount = round_currency(accrued.interest, currency)

        return ScheduleRow(
            loan_id=self.loan.id,
            installment_number=installment_number,
            due_date=period_end,
            principal_amount=principal_amount,
            interest_amount=interest_amount,
            total_due=principal_amount + interest_amount,
            balance=round_currency(principal_end, currency),
            calculation_days=accrued.calculation_days,
            calculation_principal_start=round_currency(calculation_principal, currency),
            is_extension_period=period_number > self.loan.original_duration,
        )


def build_schedule(loan: Loan, transactions: Sequence[Transaction], duration: int) -> List[ScheduleRow]:
    return ScheduleBuilder(loan, transactions, duration).build()
