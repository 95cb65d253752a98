"""
Ledger Models Module

Loan products, loans, ledger transactions and repayment schedule rows.
Loans carry their own copy of the product terms taken at origination, so a
later product edit never changes an existing loan.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Type
from enum import Enum
import uuid

from .currency import Currency, ZERO, to_decimal
from .dates import to_date
from .enums import (
    InterestAlignment, InterestCalculationMethod, InterestType, LoanStatus,
    Period, ScheduleStatus, TransactionType,
)
from .exceptions import InvalidStateError
from .storage import StorageRecord


def _coerce_enum(enum_cls: Type[Enum], value: Any, field_name: str) -> Optional[Enum]:
    """Accept an enum member or its stored value, rejecting unknown values"""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStateError(f"Unknown {field_name}: {value!r}")


def _coerce_currency(value: Any) -> Currency:
    if isinstance(value, Currency):
        return value
    try:
        return Currency[value]
    except KeyError:
        raise InvalidStateError(f"Unknown currency: {value!r}")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(value)
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid.uuid4())


@dataclass
class LoanProduct(StorageRecord):
    """Template a loan's interest terms are copied from"""
    name: str
    interest_rate: Decimal              # Annual percentage, e.g. 12 for 12%
    interest_type: InterestType
    period: Period = Period.MONTHLY
    interest_alignment: InterestAlignment = InterestAlignment.STANDARD
    interest_calculation_method: InterestCalculationMethod = InterestCalculationMethod.DAILY

    def __post_init__(self):
        self.interest_rate = to_decimal(self.interest_rate)
        self.interest_type = _coerce_enum(InterestType, self.interest_type, "interest_type")
        self.period = _coerce_enum(Period, self.period, "period")
        self.interest_alignment = _coerce_enum(
            InterestAlignment, self.interest_alignment, "interest_alignment"
        )
        self.interest_calculation_method = _coerce_enum(
            InterestCalculationMethod, self.interest_calculation_method,
            "interest_calculation_method"
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        for key in ('interest_type', 'period', 'interest_alignment', 'interest_calculation_method'):
            result[key] = getattr(self, key).value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanProduct':
        return cls(
            id=data['id'],
            created_at=_parse_timestamp(data.get('created_at')),
            updated_at=_parse_timestamp(data.get('updated_at')),
            name=data.get('name', ''),
            interest_rate=data['interest_rate'],
            interest_type=data['interest_type'],
            period=data.get('period', Period.MONTHLY.value),
            interest_alignment=data.get('interest_alignment') or InterestAlignment.STANDARD.value,
            interest_calculation_method=(
                data.get('interest_calculation_method') or InterestCalculationMethod.DAILY.value
            ),
        )


@dataclass
class Loan(StorageRecord):
    """
    A loan and its snapshot of product terms.

    The interest fields are optional on records created before the snapshot
    was taken; ``with_product_terms`` fills any gap from the product.
    """
    product_id: str
    principal_amount: Decimal
    start_date: date
    duration: int                       # Schedule length in periods

    # Snapshot of product terms
    interest_rate: Optional[Decimal] = None
    interest_type: Optional[InterestType] = None
    period: Optional[Period] = None
    interest_alignment: Optional[InterestAlignment] = None
    interest_calculation_method: Optional[InterestCalculationMethod] = None

    auto_extend: bool = False
    original_duration: Optional[int] = None  # Term at origination
    exit_fee: Decimal = ZERO
    status: LoanStatus = LoanStatus.LIVE
    currency: Currency = Currency.GBP

    # Derived by schedule regeneration and payment re-application
    total_interest: Decimal = ZERO
    total_repayable: Decimal = ZERO
    principal_paid: Decimal = ZERO
    interest_paid: Decimal = ZERO

    borrower_name: Optional[str] = None
    loan_number: Optional[str] = None
    is_deleted: bool = False

    def __post_init__(self):
        self.principal_amount = to_decimal(self.principal_amount)
        self.start_date = to_date(self.start_date) if self.start_date else None
        self.duration = int(self.duration) if self.duration is not None else None
        if self.interest_rate is not None:
            self.interest_rate = to_decimal(self.interest_rate)
        self.interest_type = _coerce_enum(InterestType, self.interest_type, "interest_type")
        self.period = _coerce_enum(Period, self.period, "period")
        self.interest_alignment = _coerce_enum(
            InterestAlignment, self.interest_alignment, "interest_alignment"
        )
        self.interest_calculation_method = _coerce_enum(
            InterestCalculationMethod, self.interest_calculation_method,
            "interest_calculation_method"
        )
        self.status = _coerce_enum(LoanStatus, self.status, "status")
        self.currency = _coerce_currency(self.currency)
        for name in ('exit_fee', 'total_interest', 'total_repayable',
                     'principal_paid', 'interest_paid'):
            setattr(self, name, to_decimal(getattr(self, name)))
        if self.original_duration is None:
            self.original_duration = self.duration

    def with_product_terms(self, product: LoanProduct) -> 'Loan':
        """Copy of this loan with any missing term taken from the product"""
        return replace(
            self,
            interest_rate=self.interest_rate if self.interest_rate is not None else product.interest_rate,
            interest_type=self.interest_type or product.interest_type,
            period=self.period or product.period,
            interest_alignment=self.interest_alignment or product.interest_alignment,
            interest_calculation_method=(
                self.interest_calculation_method or product.interest_calculation_method
            ),
        )

    @property
    def is_live(self) -> bool:
        return self.status == LoanStatus.LIVE and not self.is_deleted

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['start_date'] = self.start_date.isoformat() if self.start_date else None
        result['currency'] = self.currency.code
        result['status'] = self.status.value
        for key in ('interest_type', 'period', 'interest_alignment', 'interest_calculation_method'):
            value = getattr(self, key)
            result[key] = value.value if value else None
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        return cls(
            id=data['id'],
            created_at=_parse_timestamp(data.get('created_at')),
            updated_at=_parse_timestamp(data.get('updated_at')),
            product_id=data['product_id'],
            principal_amount=data['principal_amount'],
            start_date=data.get('start_date'),
            duration=data.get('duration'),
            interest_rate=data.get('interest_rate'),
            interest_type=data.get('interest_type'),
            period=data.get('period'),
            interest_alignment=data.get('interest_alignment'),
            interest_calculation_method=data.get('interest_calculation_method'),
            auto_extend=bool(data.get('auto_extend', False)),
            original_duration=data.get('original_duration'),
            exit_fee=data.get('exit_fee'),
            status=data.get('status', LoanStatus.LIVE.value),
            currency=data.get('currency', Currency.GBP.code),
            total_interest=data.get('total_interest'),
            total_repayable=data.get('total_repayable'),
            principal_paid=data.get('principal_paid'),
            interest_paid=data.get('interest_paid'),
            borrower_name=data.get('borrower_name'),
            loan_number=data.get('loan_number'),
            is_deleted=bool(data.get('is_deleted', False)),
        )


@dataclass
class LoanDraft:
    """Loan details captured at origination, before any schedule exists"""
    principal_amount: Decimal
    start_date: date
    borrower_name: Optional[str] = None
    loan_number: Optional[str] = None
    exit_fee: Decimal = ZERO
    currency: Currency = Currency.GBP
    id: Optional[str] = None

    def __post_init__(self):
        self.principal_amount = to_decimal(self.principal_amount)
        self.start_date = to_date(self.start_date)
        self.exit_fee = to_decimal(self.exit_fee)
        self.currency = _coerce_currency(self.currency)


@dataclass
class Transaction(StorageRecord):
    """Append-only ledger entry. Corrections soft-delete, never edit."""
    loan_id: str
    transaction_date: date
    transaction_type: TransactionType
    amount: Decimal
    principal_applied: Decimal = ZERO
    interest_applied: Decimal = ZERO
    fee_applied: Decimal = ZERO
    reference: Optional[str] = None
    is_deleted: bool = False

    def __post_init__(self):
        self.transaction_date = to_date(self.transaction_date)
        self.transaction_type = _coerce_enum(TransactionType, self.transaction_type, "transaction type")
        self.amount = to_decimal(self.amount)
        self.principal_applied = to_decimal(self.principal_applied)
        self.interest_applied = to_decimal(self.interest_applied)
        self.fee_applied = to_decimal(self.fee_applied)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['transaction_date'] = self.transaction_date.isoformat()
        result['transaction_type'] = self.transaction_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            created_at=_parse_timestamp(data.get('created_at')),
            updated_at=_parse_timestamp(data.get('updated_at')),
            loan_id=data['loan_id'],
            transaction_date=data['transaction_date'],
            transaction_type=data['transaction_type'],
            amount=data['amount'],
            principal_applied=data.get('principal_applied'),
            interest_applied=data.get('interest_applied'),
            fee_applied=data.get('fee_applied'),
            reference=data.get('reference'),
            is_deleted=bool(data.get('is_deleted', False)),
        )


@dataclass
class ScheduleRow:
    """
    One installment of a repayment schedule.

    Rows are a disposable projection of the ledger: regeneration replaces the
    whole set, and payment application only touches the paid fields and
    status. The id is derived from the loan and installment number so the
    same ledger always yields the same stored rows.
    """
    loan_id: str
    installment_number: int
    due_date: date
    principal_amount: Decimal
    interest_amount: Decimal
    total_due: Decimal
    balance: Decimal
    calculation_days: int
    calculation_principal_start: Decimal
    status: ScheduleStatus = ScheduleStatus.PENDING
    principal_paid: Decimal = ZERO
    interest_paid: Decimal = ZERO
    is_extension_period: bool = False

    def __post_init__(self):
        self.due_date = to_date(self.due_date)
        self.status = _coerce_enum(ScheduleStatus, self.status, "schedule status")
        for name in ('principal_amount', 'interest_amount', 'total_due', 'balance',
                     'calculation_principal_start', 'principal_paid', 'interest_paid'):
            setattr(self, name, to_decimal(getattr(self, name)))

    @property
    def id(self) -> str:
        return f"{self.loan_id}_{self.installment_number}"

    @property
    def total_paid(self) -> Decimal:
        return self.principal_paid + self.interest_paid

    @property
    def interest_outstanding(self) -> Decimal:
        return max(ZERO, self.interest_amount - self.interest_paid)

    @property
    def principal_outstanding(self) -> Decimal:
        return max(ZERO, self.principal_amount - self.principal_paid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'loan_id': self.loan_id,
            'installment_number': self.installment_number,
            'due_date': self.due_date.isoformat(),
            'principal_amount': str(self.principal_amount),
            'interest_amount': str(self.interest_amount),
            'total_due': str(self.total_due),
            'balance': str(self.balance),
            'calculation_days': self.calculation_days,
            'calculation_principal_start': str(self.calculation_principal_start),
            'status': self.status.value,
            'principal_paid': str(self.principal_paid),
            'interest_paid': str(self.interest_paid),
            'is_extension_period': self.is_extension_period,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScheduleRow':
        return cls(
            loan_id=data['loan_id'],
            installment_number=int(data['installment_number']),
            due_date=data['due_date'],
            principal_amount=data['principal_amount'],
            interest_amount=data['interest_amount'],
            total_due=data['total_due'],
            balance=data['balance'],
            calculation_days=int(data['calculation_days']),
            calculation_principal_start=data['calculation_principal_start'],
            status=data.get('status', ScheduleStatus.PENDING.value),
            principal_paid=data.get('principal_paid'),
            interest_paid=data.get('interest_paid'),
            is_extension_period=bool(data.get('is_extension_period', False)),
        )
