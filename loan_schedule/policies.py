"""
Interest-Type Policies

Decides the principal portion of each installment. The set of interest types
is fixed, so dispatch is a plain mapping from ``InterestType`` to a policy
instance rather than a runtime registry.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from .currency import ZERO
from .dates import periods_per_year
from .enums import InterestType, Period
from .exceptions import InvalidStateError

ONE = Decimal('1')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class InstallmentContext:
    """What a policy knows about the period it is pricing"""
    period_number: int          # 1-based among the periods the policy prices
    duration: int
    period: Period
    annual_rate: Decimal
    principal_at_start: Decimal  # Ledger principal less principal already scheduled
    principal_at_end: Decimal    # Ledger principal at the due date
    interest: Decimal            # Unrounded interest on principal_at_start

    @property
    def is_final(self) -> bool:
        return self.period_number == self.duration

    @property
    def remaining_periods(self) -> int:
        return self.duration - self.period_number + 1

    @property
    def period_rate(self) -> Decimal:
        return self.annual_rate / HUNDRED / Decimal(periods_per_year(self.period))


class InterestPolicy:
    """Base policy: no scheduled principal"""

    interest_type: InterestType = None

    def principal_due(self, context: InstallmentContext) -> Decimal:
        return ZERO


class FlatPolicy(InterestPolicy):
    """Flat-rate loans are interest-only by construction"""
    interest_type = InterestType.FLAT


class ReducingPolicy(InterestPolicy):
    """
    Amortizing annuity re-priced every period.

    The payment is recomputed from the principal expected at the start of
    the period over the periods that remain, so mid-term repayments and
    further advances flow straight into the next installment. The final
    installment settles whatever is left.
    """
    interest_type = InterestType.REDUCING

    def periodic_payment(self, principal: Decimal, rate: Decimal, periods: int) -> Decimal:
        if principal <= ZERO or periods <= 0:
            return ZERO
        if rate == ZERO:
            return principal / Decimal(periods)
        factor = (ONE + rate) ** periods
        return principal * (rate * factor) / (factor - ONE)

    def principal_due(self, context: InstallmentContext) -> Decimal:
        if context.is_final:
            return max(ZERO, context.principal_at_start)
        payment = self.periodic_payment(
            context.principal_at_start, context.period_rate, context.remaining_periods
        )
        if payment == ZERO:
            return ZERO
        return max(ZERO, payment - context.interest)


class BalloonPolicy(InterestPolicy):
    """Interest each period; whatever principal remains is due with the last one"""

    def principal_due(self, context: InstallmentContext) -> Decimal:
        if context.is_final:
            return context.principal_at_end
        return ZERO


class InterestOnlyPolicy(BalloonPolicy):
    interest_type = InterestType.INTEREST_ONLY


class RolledUpPolicy(BalloonPolicy):
    # Compounding happens at origination; the schedule shape matches interest-only
    interest_type = InterestType.ROLLED_UP


POLICIES: Dict[InterestType, InterestPolicy] = {
    InterestType.FLAT: FlatPolicy(),
    InterestType.REDUCING: ReducingPolicy(),
    InterestType.INTEREST_ONLY: InterestOnlyPolicy(),
    InterestType.ROLLED_UP: RolledUpPolicy(),
}


def policy_for(interest_type: InterestType) -> InterestPolicy:
    try:
        return POLICIES[interest_type]
    except KeyError:
        raise InvalidStateError(f"No schedule policy for interest type {interest_type!r}")
