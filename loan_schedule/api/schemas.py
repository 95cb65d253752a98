"""
Pydantic schemas for API requests, plus the response shapes they map to
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..engine import ScheduleSummary
from ..models import Loan, ScheduleRow, Transaction


# Product schemas
class CreateProductRequest(BaseModel):
    name: str
    interest_rate: Decimal = Field(..., ge=0, description="Annual rate in percent, e.g. 12 for 12%")
    interest_type: str = Field(..., description="Flat, Reducing, Interest-Only or Rolled-Up")
    period: str = Field("Monthly", description="Monthly or Weekly")
    interest_alignment: str = Field("standard", description="standard or monthly_first")
    interest_calculation_method: str = Field("daily", description="daily or monthly")


# Loan schemas
class CreateLoanRequest(BaseModel):
    product_id: str
    principal_amount: Decimal
    start_date: date
    duration: Optional[int] = Field(None, gt=0, description="Periods; configured default when omitted")
    auto_extend: Optional[bool] = None
    exit_fee: Decimal = Decimal('0')
    borrower_name: Optional[str] = None
    loan_number: Optional[str] = None
    currency: str = "GBP"


class RegenerateScheduleRequest(BaseModel):
    duration: Optional[int] = Field(None, gt=0, description="Explicit schedule length, used verbatim")
    end_date: Optional[date] = None
    skip_disbursement: bool = False


class RecordTransactionRequest(BaseModel):
    type: str = Field(..., description="Disbursement or Repayment")
    amount: Decimal
    transaction_date: date = Field(..., alias="date")
    principal_applied: Optional[Decimal] = None
    interest_applied: Decimal = Decimal('0')
    fee_applied: Decimal = Decimal('0')
    reference: Optional[str] = None


class AutoExtendRequest(BaseModel):
    end_date: Optional[date] = None


def loan_response(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "product_id": loan.product_id,
        "loan_number": loan.loan_number,
        "borrower_name": loan.borrower_name,
        "status": loan.status.value,
        "principal_amount": str(loan.principal_amount),
        "start_date": loan.start_date.isoformat(),
        "duration": loan.duration,
        "original_duration": loan.original_duration,
        "period": loan.period.value if loan.period else None,
        "interest_rate": str(loan.interest_rate) if loan.interest_rate is not None else None,
        "interest_type": loan.interest_type.value if loan.interest_type else None,
        "interest_alignment": loan.interest_alignment.value if loan.interest_alignment else None,
        "interest_calculation_method": (
            loan.interest_calculation_method.value if loan.interest_calculation_method else None
        ),
        "auto_extend": loan.auto_extend,
        "exit_fee": str(loan.exit_fee),
        "currency": loan.currency.code,
        "total_interest": str(loan.total_interest),
        "total_repayable": str(loan.total_repayable),
        "principal_paid": str(loan.principal_paid),
        "interest_paid": str(loan.interest_paid),
    }


def row_response(row: ScheduleRow) -> Dict[str, Any]:
    result = row.to_dict()
    del result['loan_id']
    return result


def summary_response(summary: ScheduleSummary) -> Dict[str, Any]:
    return {
        "total_interest": str(summary.total_interest),
        "total_repayable": str(summary.total_repayable),
        "duration": summary.duration,
        "outstanding_principal": str(summary.outstanding_principal),
    }


def transaction_response(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "loan_id": transaction.loan_id,
        "type": transaction.transaction_type.value,
        "date": transaction.transaction_date.isoformat(),
        "amount": str(transaction.amount),
        "principal_applied": str(transaction.principal_applied),
        "interest_applied": str(transaction.interest_applied),
        "fee_applied": str(transaction.fee_applied),
        "reference": transaction.reference,
        "is_deleted": transaction.is_deleted,
    }
