from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from decimal import Decimal
from typing import Any, Optional

from ..deps import get_storage
from ..storage import Storage
from ..validation import Amount, PaymentMethod

router = APIRouter(prefix="/transactions", tags=["transactions"])


class TransactionIn(BaseModel):
    # Negative totals are legal: a flat discount may exceed the cart value.
    total_amount: Decimal
    payment_method: PaymentMethod
    received_amount: Optional[Amount] = None
    change_amount: Optional[Amount] = None
    transaction_customer_id: Optional[str] = None
    items_json: Any = None


@router.get("")
def list_transactions(storage: Storage = Depends(get_storage)):
    return {"transactions": storage.list_transactions()}


@router.post("", status_code=201)
def create_transaction(data: TransactionIn, storage: Storage = Depends(get_storage)):
    if data.items_json is None:
        raise HTTPException(status_code=400, detail="items_json is required")
    row = storage.create_transaction(data.model_dump())
    return {"transaction": row}
