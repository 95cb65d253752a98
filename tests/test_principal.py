"""
Tests for principal history replay

Principal outstanding is derived from the ledger on demand; these tests pin
down which entries count for a given date.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime

from loan_schedule.principal import principal_at, principal_state


class TestPrincipalAt:
    """Test principal outstanding as of a date"""

    def test_no_transactions_returns_original_principal(self, make_loan):
        loan = make_loan()
        assert principal_at(loan, [], date(2024, 6, 1)) == Decimal('10000.00')

    def test_repayment_counts_only_strictly_before_date(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 2, 10), "2000")]

        assert principal_at(loan, transactions, date(2024, 2, 10)) == Decimal('10000.00')
        assert principal_at(loan, transactions, date(2024, 2, 11)) == Decimal('8000.00')

    def test_interest_component_does_not_reduce_principal(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 2, 1), "500", interest="100")]

        assert principal_at(loan, transactions, date(2024, 3, 1)) == Decimal('9500.00')

    def test_further_advance_adds_principal(self, make_loan, make_repayment, make_disbursement):
        loan = make_loan()
        transactions = [
            make_repayment(date(2024, 2, 10), "2000"),
            make_disbursement(date(2024, 3, 1), "1500"),
        ]

        assert principal_at(loan, transactions, date(2024, 3, 1)) == Decimal('8000.00')
        assert principal_at(loan, transactions, date(2024, 3, 2)) == Decimal('9500.00')

    def test_initial_disbursement_is_not_counted_twice(self, make_loan, make_disbursement):
        """The advance on the start date is already in principal_amount"""
        loan = make_loan()
        transactions = [make_disbursement(date(2024, 1, 1), "10000")]

        assert principal_at(loan, transactions, date(2024, 5, 1)) == Decimal('10000.00')

    def test_initial_and_further_advances_together(self, make_loan, make_repayment, make_disbursement):
        loan = make_loan()
        transactions = [
            make_disbursement(date(2024, 1, 1), "10000"),
            make_repayment(date(2024, 2, 10), "2000"),
            make_disbursement(date(2024, 3, 1), "1500"),
        ]

        assert principal_at(loan, transactions, date(2024, 3, 1)) == Decimal('8000.00')
        assert principal_at(loan, transactions, date(2024, 4, 1)) == Decimal('9500.00')

    def test_never_negative(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 2, 1), "12000")]

        assert principal_at(loan, transactions, date(2024, 3, 1)) == Decimal('0')

    def test_deleted_transactions_ignored(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 2, 1), "3000", is_deleted=True)]

        assert principal_at(loan, transactions, date(2024, 3, 1)) == Decimal('10000.00')

    def test_time_of_day_is_stripped(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 2, 10), "2000")]

        assert principal_at(loan, transactions, datetime(2024, 2, 10, 23, 59)) == Decimal('10000.00')
        assert principal_at(loan, transactions, "2024-02-11T00:30:00") == Decimal('8000.00')


class TestPrincipalState:
    """Test lifetime principal totals"""

    def test_totals(self, make_loan, make_repayment, make_disbursement):
        loan = make_loan()
        transactions = [
            make_disbursement(date(2024, 1, 1), "10000"),
            make_repayment(date(2024, 2, 10), "2000", interest="98.63"),
            make_disbursement(date(2024, 3, 1), "1500"),
            make_repayment(date(2024, 4, 1), "500"),
        ]

        state = principal_state(loan, transactions)

        assert state.total_disbursed == Decimal('11500.00')
        assert state.total_capital_repaid == Decimal('2500')
        assert state.outstanding == Decimal('9000.00')

    def test_outstanding_floored_at_zero(self, make_loan, make_repayment):
        loan = make_loan(principal_amount=Decimal('1000'))
        state = principal_state(loan, [make_repayment(date(2024, 2, 1), "1200")])

        assert state.outstanding == Decimal('0')
