"""
Loan, schedule and ledger endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .schemas import (
    CreateLoanRequest, RecordTransactionRequest, RegenerateScheduleRequest,
    loan_response, row_response, summary_response, transaction_response,
)
from .system import LendingSystem, get_lending_system
from ..enums import TransactionType
from ..exceptions import InvalidStateError, NotFoundError
from ..models import LoanDraft


router = APIRouter()


def _refresh_schedule(system: LendingSystem, loan_id: str):
    """Regenerate after a ledger change, then rebuild payment state"""
    result = system.engine.regenerate_loan_schedule(loan_id)
    system.engine.reapply_repayments(loan_id)
    return result


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Originate a loan from a product and generate its first schedule"""
    product = system.ledger.get_product(request.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Loan product not found")

    try:
        draft = LoanDraft(
            principal_amount=request.principal_amount,
            start_date=request.start_date,
            borrower_name=request.borrower_name,
            loan_number=request.loan_number,
            exit_fee=request.exit_fee,
            currency=request.currency,
        )
        result = system.engine.apply_schedule_to_new_loan(
            draft, product,
            duration=request.duration,
            auto_extend=request.auto_extend
        )

        return {
            "loan": loan_response(result.loan),
            "schedule": [row_response(row) for row in result.schedule],
            "summary": summary_response(result.summary),
        }

    except InvalidStateError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan details"""
    loan = system.ledger.get_loan(loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")

    return loan_response(loan)


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get the loan's current repayment schedule"""
    try:
        schedule = system.engine.get_schedule(loan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"loan_id": loan_id, "schedule": [row_response(row) for row in schedule]}


@router.post("/{loan_id}/schedule/regenerate")
async def regenerate_schedule(
    loan_id: str,
    request: RegenerateScheduleRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Rebuild the schedule from the ledger and re-apply repayments"""
    try:
        result = system.engine.regenerate_loan_schedule(
            loan_id,
            duration=request.duration,
            end_date=request.end_date,
            skip_disbursement=request.skip_disbursement
        )
        system.engine.reapply_repayments(loan_id)

        return {
            "loan": loan_response(result.loan),
            "schedule": [row_response(row) for row in system.engine.get_schedule(loan_id)],
            "summary": summary_response(result.summary),
        }

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/{loan_id}/transactions", status_code=status.HTTP_201_CREATED)
async def record_transaction(
    loan_id: str,
    request: RecordTransactionRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Record a disbursement or repayment and regenerate the schedule"""
    try:
        if request.type == TransactionType.DISBURSEMENT.value:
            transaction = system.ledger.record_disbursement(
                loan_id,
                amount=request.amount,
                transaction_date=request.transaction_date,
                reference=request.reference
            )
        elif request.type == TransactionType.REPAYMENT.value:
            transaction = system.ledger.record_repayment(
                loan_id,
                amount=request.amount,
                transaction_date=request.transaction_date,
                principal_applied=request.principal_applied,
                interest_applied=request.interest_applied,
                fee_applied=request.fee_applied,
                reference=request.reference
            )
        else:
            raise InvalidStateError(f"Unsupported transaction type: {request.type}")

        result = _refresh_schedule(system, loan_id)

        return {
            "transaction": transaction_response(transaction),
            "summary": summary_response(result.summary),
        }

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{loan_id}/transactions/{transaction_id}")
async def delete_transaction(
    loan_id: str,
    transaction_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Soft-delete a ledger entry and regenerate the schedule"""
    try:
        transaction = system.ledger.soft_delete_transaction(loan_id, transaction_id)
        result = _refresh_schedule(system, loan_id)

        return {
            "transaction": transaction_response(transaction),
            "summary": summary_response(result.summary),
        }

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=422, detail=str(e))
