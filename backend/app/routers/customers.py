from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from ..deps import get_storage
from ..storage import Storage

router = APIRouter(prefix="/customers", tags=["customers"])


class CustomerIn(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


def _clean_contact(data: dict) -> dict:
    out = {}
    for k, v in data.items():
        if k == "name":
            continue
        v = (v or "").strip()
        out[k] = v or None
    return out


@router.get("")
def list_customers(storage: Storage = Depends(get_storage)):
    return {"customers": storage.list_customers()}


@router.post("", status_code=201)
def create_customer(data: CustomerIn, storage: Storage = Depends(get_storage)):
    name = (data.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    row = storage.create_customer({"name": name, **_clean_contact(data.model_dump())})
    return {"customer": row}


@router.patch("/{customer_id}")
def update_customer(customer_id: str, data: CustomerUpdate, storage: Storage = Depends(get_storage)):
    patch = data.model_dump(exclude_unset=True)
    values = _clean_contact(patch)
    if "name" in patch:
        nm = (patch["name"] or "").strip()
        if not nm:
            raise HTTPException(status_code=400, detail="name cannot be empty")
        values["name"] = nm
    # An empty patch still bumps updated_at.
    row = storage.update_customer(customer_id, values)
    if not row:
        raise HTTPException(status_code=404, detail="customer not found")
    return {"customer": row}


@router.delete("/{customer_id}", status_code=204)
def delete_customer(customer_id: str, storage: Storage = Depends(get_storage)):
    if not storage.delete_customer(customer_id):
        raise HTTPException(status_code=404, detail="customer not found")
