"""
Loan product endpoints
"""

from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, Depends, status

from .schemas import CreateProductRequest
from .system import LendingSystem, get_lending_system
from ..exceptions import InvalidStateError
from ..models import LoanProduct, new_record_id


router = APIRouter()


def _product_response(product: LoanProduct) -> dict:
    result = product.to_dict()
    result.pop('created_at', None)
    result.pop('updated_at', None)
    return result


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: CreateProductRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Create a loan product"""
    try:
        now = datetime.now(timezone.utc)
        product = LoanProduct(
            id=new_record_id(),
            created_at=now,
            updated_at=now,
            name=request.name,
            interest_rate=request.interest_rate,
            interest_type=request.interest_type,
            period=request.period,
            interest_alignment=request.interest_alignment,
            interest_calculation_method=request.interest_calculation_method,
        )
        system.ledger.save_product(product)

        return _product_response(product)

    except InvalidStateError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan product details"""
    product = system.ledger.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Loan product not found")

    return _product_response(product)
