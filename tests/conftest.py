"""
Shared builders for loan schedule tests
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone, date

from loan_schedule.enums import (
    InterestAlignment, InterestCalculationMethod, InterestType, Period, TransactionType
)
from loan_schedule.models import Loan, LoanProduct, Transaction


def build_loan(**overrides) -> Loan:
    now = datetime.now(timezone.utc)
    fields = dict(
        id="loan_001",
        created_at=now,
        updated_at=now,
        product_id="product_001",
        principal_amount=Decimal('10000.00'),
        start_date=date(2024, 1, 1),
        duration=12,
        interest_rate=Decimal('12'),
        interest_type=InterestType.REDUCING,
        period=Period.MONTHLY,
        interest_alignment=InterestAlignment.STANDARD,
        interest_calculation_method=InterestCalculationMethod.DAILY,
    )
    fields.update(overrides)
    return Loan(**fields)


def build_product(**overrides) -> LoanProduct:
    now = datetime.now(timezone.utc)
    fields = dict(
        id="product_001",
        created_at=now,
        updated_at=now,
        name="Standard Reducing",
        interest_rate=Decimal('12'),
        interest_type=InterestType.REDUCING,
        period=Period.MONTHLY,
    )
    fields.update(overrides)
    return LoanProduct(**fields)


_counter = {"n": 0}


def build_transaction(transaction_type: TransactionType, transaction_date: date,
                      amount: str, principal_applied: str = "0", interest_applied: str = "0",
                      loan_id: str = "loan_001", is_deleted: bool = False) -> Transaction:
    _counter["n"] += 1
    now = datetime.now(timezone.utc)
    return Transaction(
        id=f"tx_{_counter['n']:04d}",
        created_at=now,
        updated_at=now,
        loan_id=loan_id,
        transaction_date=transaction_date,
        transaction_type=transaction_type,
        amount=Decimal(amount),
        principal_applied=Decimal(principal_applied),
        interest_applied=Decimal(interest_applied),
        is_deleted=is_deleted,
    )


def repayment(transaction_date: date, principal: str, interest: str = "0", **kwargs) -> Transaction:
    amount = str(Decimal(principal) + Decimal(interest))
    return build_transaction(
        TransactionType.REPAYMENT, transaction_date, amount,
        principal_applied=principal, interest_applied=interest, **kwargs
    )


def disbursement(transaction_date: date, amount: str, **kwargs) -> Transaction:
    return build_transaction(TransactionType.DISBURSEMENT, transaction_date, amount, **kwargs)


@pytest.fixture
def make_loan():
    return build_loan


@pytest.fixture
def make_product():
    return build_product


@pytest.fixture
def make_repayment():
    return repayment


@pytest.fixture
def make_disbursement():
    return disbursement
