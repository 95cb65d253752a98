"""
Tests for schedule row assembly

Covers both alignment modes and the invariants every generated row must
satisfy regardless of interest type.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_schedule.currency import round_currency
from loan_schedule.enums import (
    InterestAlignment, InterestCalculationMethod, InterestType, Period, ScheduleStatus
)
from loan_schedule.principal import principal_at
from loan_schedule.schedule import build_schedule


class TestPeriodBasedSchedule:
    """Test schedules anchored on the loan start date"""

    def test_reducing_first_period(self, make_loan):
        """£10,000 at 12% over 12 months"""
        loan = make_loan()
        rows = build_schedule(loan, [], 12)

        assert len(rows) == 12
        assert [r.installment_number for r in rows] == list(range(1, 13))
        assert rows[0].due_date == date(2024, 2, 1)
        assert rows[-1].due_date == date(2025, 1, 1)

        # 31 days of interest on £10,000 at 12%
        assert rows[0].interest_amount == Decimal('101.92')
        assert rows[0].calculation_days == 31
        assert rows[0].principal_amount == Decimal('786.57')
        assert rows[0].total_due == Decimal('888.49')
        assert rows[0].status == ScheduleStatus.PENDING

    def test_monthly_fixed_periods_are_exact(self, make_loan):
        loan = make_loan(interest_calculation_method=InterestCalculationMethod.MONTHLY)
        rows = build_schedule(loan, [], 12)

        # First period still uses the day count
        assert rows[0].interest_amount == Decimal('101.92')
        for row in rows[1:]:
            assert row.interest_amount == Decimal('100.00')
            assert row.calculation_days == 30

    def test_monthly_fixed_ignored_for_weekly_loans(self, make_loan):
        loan = make_loan(
            period=Period.WEEKLY,
            interest_calculation_method=InterestCalculationMethod.MONTHLY
        )
        rows = build_schedule(loan, [], 3)

        assert all(row.calculation_days == 7 for row in rows)

    def test_balance_matches_ledger(self, make_loan, make_repayment, make_disbursement):
        loan = make_loan()
        transactions = [
            make_repayment(date(2024, 2, 15), "2500", interest="101.92"),
            make_disbursement(date(2024, 4, 10), "1000"),
            make_repayment(date(2024, 6, 1), "800"),
        ]
        rows = build_schedule(loan, transactions, 12)

        for row in rows:
            assert row.balance == round_currency(principal_at(loan, transactions, row.due_date))
            assert row.balance >= 0

    def test_flat_interest_unaffected_by_repayments(self, make_loan, make_repayment):
        loan = make_loan(interest_type=InterestType.FLAT)
        transactions = [make_repayment(date(2024, 3, 10), "6000")]

        with_repayment = build_schedule(loan, transactions, 6)
        without_repayment = build_schedule(loan, [], 6)

        assert [r.interest_amount for r in with_repayment] == [r.interest_amount for r in without_repayment]
        assert all(r.principal_amount == Decimal('0') for r in with_repayment)
        assert all(r.calculation_principal_start == Decimal('10000.00') for r in with_repayment)

    def test_flat_loan_stops_accruing_once_repaid(self, make_loan, make_repayment):
        loan = make_loan(interest_type=InterestType.FLAT, duration=6)
        transactions = [make_repayment(date(2024, 2, 15), "10000")]
        rows = build_schedule(loan, transactions, 6)

        daily = Decimal('12') / Decimal('100') / Decimal('365')
        assert rows[0].interest_amount == Decimal('101.92')
        assert rows[1].interest_amount == round_currency(Decimal('10000') * daily * 14)
        assert all(r.interest_amount == Decimal('0') for r in rows[2:])
        assert all(r.balance == Decimal('0') for r in rows[1:])

    def test_reducing_principal_repays_the_loan(self, make_loan):
        loan = make_loan()
        rows = build_schedule(loan, [], 12)

        assert sum(r.principal_amount for r in rows) == Decimal('10000.00')
        assert all(r.principal_amount > 0 for r in rows)
        # Balances stay on the ledger until repayments are recorded
        assert all(r.balance == Decimal('10000.00') for r in rows)

    def test_reducing_reprices_after_repayment(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 3, 15), "2000")]
        rows = build_schedule(loan, transactions, 12)

        assert rows[3].calculation_principal_start == Decimal('8000.00')
        assert sum(r.principal_amount for r in rows[3:]) == Decimal('8000.00')

    def test_reducing_principal_grows_each_period(self, make_loan):
        loan = make_loan(interest_calculation_method=InterestCalculationMethod.MONTHLY)
        rows = build_schedule(loan, [], 12)

        principals = [r.principal_amount for r in rows[:-1]]
        assert principals == sorted(principals)
        assert len(set(principals)) == len(principals)

    @pytest.mark.parametrize("interest_type", [InterestType.INTEREST_ONLY, InterestType.ROLLED_UP])
    def test_balloon_on_last_row(self, make_loan, make_repayment, interest_type):
        loan = make_loan(interest_type=interest_type, duration=6)
        transactions = [make_repayment(date(2024, 3, 15), "3000")]
        rows = build_schedule(loan, transactions, 6)

        assert all(r.principal_amount == Decimal('0') for r in rows[:-1])
        last = rows[-1]
        assert last.principal_amount == round_currency(principal_at(loan, transactions, last.due_date))
        assert last.principal_amount == Decimal('7000.00')

    def test_extension_rows_flagged(self, make_loan):
        loan = make_loan(duration=6, original_duration=4)
        rows = build_schedule(loan, [], 6)

        assert [r.is_extension_period for r in rows] == [False] * 4 + [True] * 2

    def test_row_ids_are_deterministic(self, make_loan):
        loan = make_loan()
        rows = build_schedule(loan, [], 3)

        assert [r.id for r in rows] == ["loan_001_1", "loan_001_2", "loan_001_3"]

    def test_same_ledger_same_rows(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [make_repayment(date(2024, 2, 15), "2500")]

        first = build_schedule(loan, transactions, 12)
        second = build_schedule(loan, transactions, 12)

        assert [r.to_dict() for r in first] == [r.to_dict() for r in second]


class TestMonthlyFirstSchedule:
    """Test schedules anchored on the 1st of each calendar month"""

    def test_stub_then_calendar_months(self, make_loan):
        loan = make_loan(
            start_date=date(2024, 1, 15),
            duration=3,
            interest_type=InterestType.INTEREST_ONLY,
            interest_alignment=InterestAlignment.MONTHLY_FIRST,
        )
        rows = build_schedule(loan, [], 3)

        assert [r.due_date for r in rows] == [
            date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1), date(2024, 5, 1)
        ]
        assert [r.calculation_days for r in rows] == [17, 29, 31, 30]
        assert rows[0].principal_amount == Decimal('0')
        assert rows[0].interest_amount == round_currency(
            Decimal('10000') * Decimal('12') / Decimal('100') / Decimal('365') * 17
        )
        # Balloon lands on the last calendar month
        assert rows[-1].principal_amount == Decimal('10000.00')
        assert not any(r.is_extension_period for r in rows)

    def test_start_on_first_has_no_stub(self, make_loan):
        loan = make_loan(
            start_date=date(2024, 3, 1),
            duration=2,
            interest_alignment=InterestAlignment.MONTHLY_FIRST,
        )
        rows = build_schedule(loan, [], 2)

        assert [r.due_date for r in rows] == [date(2024, 4, 1), date(2024, 5, 1)]
        assert rows[0].calculation_days == 31

    def test_repayment_inside_calendar_month(self, make_loan, make_repayment):
        loan = make_loan(
            start_date=date(2024, 1, 15),
            interest_alignment=InterestAlignment.MONTHLY_FIRST,
            interest_type=InterestType.INTEREST_ONLY,
        )
        transactions = [make_repayment(date(2024, 2, 11), "4000")]
        rows = build_schedule(loan, transactions, 2)

        daily = Decimal('12') / Decimal('100') / Decimal('365')
        expected = Decimal('10000') * daily * 10 + Decimal('6000') * daily * 19
        assert rows[1].interest_amount == round_currency(expected)
        assert rows[1].balance == Decimal('6000.00')

    def test_weekly_loans_ignore_monthly_first(self, make_loan):
        loan = make_loan(
            start_date=date(2024, 1, 15),
            period=Period.WEEKLY,
            interest_alignment=InterestAlignment.MONTHLY_FIRST,
        )
        rows = build_schedule(loan, [], 2)

        assert [r.due_date for r in rows] == [date(2024, 1, 22), date(2024, 1, 29)]
