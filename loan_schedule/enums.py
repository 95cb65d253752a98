"""Enumerations shared by the ledger models and the schedule engine."""

from enum import Enum


class Period(Enum):
    """Billing interval of a schedule"""
    MONTHLY = "Monthly"
    WEEKLY = "Weekly"


class InterestType(Enum):
    """Interest accrual policy, fixed for the life of a loan"""
    FLAT = "Flat"                     # Always on original principal, no scheduled principal
    REDUCING = "Reducing"             # Amortizing annuity on the reducing balance
    INTEREST_ONLY = "Interest-Only"   # Interest each period, balloon at the end
    ROLLED_UP = "Rolled-Up"           # Same balloon shape, compounded upstream

    @property
    def is_balloon(self) -> bool:
        return self in (InterestType.INTEREST_ONLY, InterestType.ROLLED_UP)


class InterestAlignment(Enum):
    """How schedule periods are anchored"""
    STANDARD = "standard"             # start_date + N periods
    MONTHLY_FIRST = "monthly_first"   # 1st of each calendar month

    @classmethod
    def _missing_(cls, value):
        # Older product records use "period_based" for the standard alignment
        if value == "period_based":
            return cls.STANDARD
        return None


class InterestCalculationMethod(Enum):
    """Day-count basis for period interest"""
    DAILY = "daily"       # Actual days / 365
    MONTHLY = "monthly"   # Fixed 365/12 days per monthly period after the first


class TransactionType(Enum):
    """Ledger entry types"""
    DISBURSEMENT = "Disbursement"
    REPAYMENT = "Repayment"
    FEE = "Fee"
    ADJUSTMENT = "Adjustment"


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "Pending"
    LIVE = "Live"
    SETTLED = "Settled"
    CLOSED = "Closed"


class ScheduleStatus(Enum):
    """Payment state of a schedule row"""
    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"


class OverpaymentOption(Enum):
    """What the waterfall does with money left after all dues are met"""
    CREDIT = "credit"
    REDUCE_PRINCIPAL = "reduce_principal"
