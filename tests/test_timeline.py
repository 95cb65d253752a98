"""
Tests for the event timeline
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_schedule.enums import Period
from loan_schedule.timeline import (
    CapitalEvent, CapitalEventKind, ScheduleDueEvent,
    build_events, capital_events_in_period,
)


class TestBuildEvents:
    """Test merging ledger entries with due dates"""

    def test_due_dates_follow_start_date_anniversaries(self, make_loan):
        loan = make_loan(start_date=date(2024, 1, 31))
        events = build_events(loan, [], 3, Period.MONTHLY)

        assert [e.date for e in events] == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]
        assert [e.period_number for e in events] == [1, 2, 3]

    def test_weekly_due_dates(self, make_loan):
        loan = make_loan(start_date=date(2024, 1, 1), period=Period.WEEKLY)
        events = build_events(loan, [], 2, Period.WEEKLY)

        assert [e.date for e in events] == [date(2024, 1, 8), date(2024, 1, 15)]

    def test_sorted_chronologically(self, make_loan, make_repayment, make_disbursement):
        loan = make_loan()
        transactions = [
            make_disbursement(date(2024, 2, 20), "1000"),
            make_repayment(date(2024, 1, 10), "500"),
        ]
        events = build_events(loan, transactions, 2, Period.MONTHLY)

        assert [e.date for e in events] == [
            date(2024, 1, 10), date(2024, 2, 1), date(2024, 2, 20), date(2024, 3, 1)
        ]

    def test_capital_event_before_due_marker_on_same_day(self, make_loan, make_repayment):
        loan = make_loan()
        events = build_events(loan, [make_repayment(date(2024, 2, 1), "500")], 1, Period.MONTHLY)

        assert isinstance(events[0], CapitalEvent)
        assert isinstance(events[1], ScheduleDueEvent)
        assert events[0].date == events[1].date

    def test_interest_only_repayment_is_not_a_capital_event(self, make_loan, make_repayment):
        loan = make_loan()
        events = build_events(
            loan, [make_repayment(date(2024, 1, 20), "0", interest="100")], 1, Period.MONTHLY
        )

        assert all(isinstance(e, ScheduleDueEvent) for e in events)

    def test_initial_disbursement_is_not_a_capital_event(self, make_loan, make_disbursement):
        loan = make_loan()
        events = build_events(
            loan, [make_disbursement(date(2024, 1, 1), "10000")], 1, Period.MONTHLY
        )

        assert len(events) == 1
        assert isinstance(events[0], ScheduleDueEvent)


class TestCapitalEventsInPeriod:
    """Test selecting the events that split a period"""

    def test_half_open_interval(self, make_loan, make_repayment):
        loan = make_loan()
        transactions = [
            make_repayment(date(2024, 1, 1), "100"),
            make_repayment(date(2024, 1, 15), "200"),
            make_repayment(date(2024, 2, 1), "300"),
        ]
        events = build_events(loan, transactions, 2, Period.MONTHLY)

        selected = capital_events_in_period(events, date(2024, 1, 1), date(2024, 2, 1))

        assert [e.amount for e in selected] == [Decimal('100'), Decimal('200')]

    def test_signed_amount(self):
        repaid = CapitalEvent(date(2024, 1, 5), CapitalEventKind.CAPITAL_REPAYMENT, Decimal('250'))
        advanced = CapitalEvent(date(2024, 1, 5), CapitalEventKind.DISBURSEMENT, Decimal('250'))

        assert repaid.signed_amount == Decimal('-250')
        assert advanced.signed_amount == Decimal('250')
