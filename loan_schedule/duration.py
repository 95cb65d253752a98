"""
Duration Policy

Decides how many periods a regenerated schedule covers. Outside an explicit
override, a schedule is only ever lengthened: open loans and auto-extend
loans are pushed past the as-of date by a buffer of periods.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from .config import get_config
from .dates import days_between, periods_to_cover_days
from .models import Loan


@dataclass(frozen=True)
class DurationPolicy:
    """Extension rules, normally built from configuration"""
    settled_threshold: Decimal = Decimal('0.01')
    average_days_per_month: Decimal = Decimal('30.44')
    interest_only_buffer: int = 6
    amortizing_buffer: int = 3

    @classmethod
    def from_config(cls) -> 'DurationPolicy':
        config = get_config()
        return cls(
            settled_threshold=Decimal(config.settled_principal_threshold),
            average_days_per_month=Decimal(config.average_days_per_month),
            interest_only_buffer=config.interest_only_extension_buffer,
            amortizing_buffer=config.amortizing_extension_buffer,
        )

    def periods_elapsed(self, loan: Loan, as_of: date) -> int:
        """Periods started between the loan start and ``as_of``, rounded up"""
        days = max(0, days_between(loan.start_date, as_of))
        return periods_to_cover_days(days, loan.period, self.average_days_per_month)

    def resolve(self, loan: Loan, outstanding: Decimal, as_of: date,
                explicit_duration: Optional[int] = None) -> int:
        """
        Number of periods to schedule.

        Args:
            loan: Loan with its product terms resolved
            outstanding: Current principal outstanding from the ledger
            as_of: Date the schedule has to reach
            explicit_duration: Caller override, used verbatim

        Returns:
            Schedule duration in periods
        """
        if explicit_duration is not None:
            return explicit_duration

        duration = loan.duration
        if outstanding > self.settled_threshold or loan.auto_extend:
            elapsed = self.periods_elapsed(loan, as_of)
            if loan.interest_type.is_balloon:
                buffer = self.interest_only_buffer
            else:
                buffer = self.amortizing_buffer
            # Never shorter than the stored term, so auto-extend loans only grow
            duration = max(elapsed + buffer, duration)

        return duration
