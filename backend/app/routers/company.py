from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from ..deps import get_storage
from ..storage import COMPANY_FIELDS, Storage

router = APIRouter(prefix="/company", tags=["company"])

DEFAULT_COMPANY = {**{k: None for k in COMPANY_FIELDS}, "name": "My Store"}


class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gstin: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


@router.get("")
def get_company(storage: Storage = Depends(get_storage)):
    row = storage.get_company()
    return {"company": {**DEFAULT_COMPANY, **(row or {})}}


@router.put("")
def update_company(data: CompanyUpdate, storage: Storage = Depends(get_storage)):
    # Partial update: fields left out keep their stored value.
    patch = {}
    for k, v in data.model_dump(exclude_unset=True).items():
        v = (v or "").strip()
        patch[k] = v or None
    if "name" in patch and not patch["name"]:
        raise HTTPException(status_code=400, detail="name cannot be empty")
    if "gstin" in patch and patch["gstin"]:
        patch["gstin"] = patch["gstin"].upper()
    row = storage.save_company(patch)
    return {"company": {**DEFAULT_COMPANY, **(row or {})}}
