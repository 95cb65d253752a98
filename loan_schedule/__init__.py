"""
Loan Schedule Engine

Deterministic repayment schedule generation for a lending ledger: principal
is replayed from the append-only transaction history, interest is accrued per
segment with Decimal precision, and schedules are regenerated atomically.
"""

__version__ = "1.0.0"
