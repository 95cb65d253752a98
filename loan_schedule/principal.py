"""
Principal History Module

Principal outstanding is never stored as a running counter; it is replayed
from the ledger for whatever date the caller asks about.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .currency import ZERO
from .dates import DateLike, to_date
from .enums import TransactionType
from .models import Loan, Transaction


@dataclass(frozen=True)
class PrincipalState:
    """Lifetime principal movements of a loan"""
    total_disbursed: Decimal
    total_capital_repaid: Decimal
    outstanding: Decimal


def is_further_advance(loan: Loan, transaction: Transaction) -> bool:
    """
    A disbursement that adds to the loan's principal.

    Disbursements dated on or before the start date are the initial advance,
    already carried by ``loan.principal_amount``.
    """
    return (
        transaction.transaction_type == TransactionType.DISBURSEMENT
        and not transaction.is_deleted
        and transaction.transaction_date > loan.start_date
    )


def is_capital_repayment(transaction: Transaction) -> bool:
    return (
        transaction.transaction_type == TransactionType.REPAYMENT
        and not transaction.is_deleted
        and transaction.principal_applied > ZERO
    )


def principal_at(loan: Loan, transactions: Iterable[Transaction], as_of: DateLike) -> Decimal:
    """
    Principal outstanding at the start of ``as_of``.

    Only transactions dated strictly before ``as_of`` count, so a repayment
    made on a due date affects the next period, not the one closing that day.
    The result never goes below zero.
    """
    as_of = to_date(as_of)
    principal = loan.principal_amount

    for transaction in transactions:
        if transaction.transaction_date >= as_of:
            continue
        if is_further_advance(loan, transaction):
            principal += transaction.amount
        elif is_capital_repayment(transaction):
            principal -= transaction.principal_applied

    return max(ZERO, principal)


def principal_state(loan: Loan, transactions: Iterable[Transaction]) -> PrincipalState:
    """Totals across the whole ledger, regardless of date"""
    disbursed = loan.principal_amount
    repaid = ZERO

    for transaction in transactions:
        if is_further_advance(loan, transaction):
            disbursed += transaction.amount
        elif is_capital_repayment(transaction):
            repaid += transaction.principal_applied

    return PrincipalState(
        total_disbursed=disbursed,
        total_capital_repaid=repaid,
        outstanding=max(ZERO, disbursed - repaid),
    )
