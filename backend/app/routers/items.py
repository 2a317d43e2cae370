from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from decimal import Decimal
from typing import Optional

from ..catalog import Catalog
from ..deps import get_catalog, get_storage
from ..storage import Storage

router = APIRouter(prefix="/items", tags=["items"])


class ItemIn(BaseModel):
    name: str
    code: str
    barcode: Optional[str] = None
    category_id: Optional[str] = None
    subcategory: Optional[str] = None
    cost: Decimal = Decimal("0")
    price: Decimal
    mrp: Optional[Decimal] = None
    stock: int = 0
    image_url: Optional[str] = None


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    barcode: Optional[str] = None
    category_id: Optional[str] = None
    subcategory: Optional[str] = None
    cost: Optional[Decimal] = None
    price: Optional[Decimal] = None
    mrp: Optional[Decimal] = None
    stock: Optional[int] = None
    image_url: Optional[str] = None


def _clean(v: Optional[str]) -> Optional[str]:
    v = (v or "").strip()
    return v or None


@router.get("")
def list_items(q: Optional[str] = None, barcode: Optional[str] = None, storage: Storage = Depends(get_storage)):
    """
    List items, newest first.

    `?q=` searches name, code and barcode; `?barcode=` returns the single
    matching item (or null) for scanner lookups.
    """
    if barcode is not None and barcode.strip():
        return {"item": storage.get_item_by_barcode(barcode)}
    if q is not None and q.strip():
        return {"items": storage.search_items(q)}
    return {"items": storage.list_items()}


@router.post("", status_code=201)
def create_item(data: ItemIn, catalog: Catalog = Depends(get_catalog)):
    name = (data.name or "").strip()
    code = (data.code or "").strip()
    if not name or not code:
        raise HTTPException(status_code=400, detail="name, code and price are required")
    if data.price < 0 or data.cost < 0:
        raise HTTPException(status_code=400, detail="price and cost must be >= 0")
    row = catalog.add_item(
        {
            "name": name,
            "code": code,
            "barcode": _clean(data.barcode),
            "category_id": _clean(data.category_id),
            "subcategory": _clean(data.subcategory),
            "cost": data.cost,
            "price": data.price,
            "mrp": data.mrp,
            "stock": data.stock or 0,
            "image_url": _clean(data.image_url),
        }
    )
    return {"item": row, "items": catalog.items}


@router.patch("/{item_id}")
def update_item(item_id: str, data: ItemUpdate, catalog: Catalog = Depends(get_catalog)):
    patch = data.model_dump(exclude_unset=True)
    if not patch:
        return {"ok": True}
    for k in ("name", "code"):
        if k in patch:
            v = (patch[k] or "").strip()
            if not v:
                raise HTTPException(status_code=400, detail=f"{k} cannot be empty")
            patch[k] = v
    for k in ("barcode", "category_id", "subcategory", "image_url"):
        if k in patch:
            patch[k] = _clean(patch[k])
    row = catalog.update_item(item_id, patch)
    if not row:
        raise HTTPException(status_code=404, detail="item not found")
    return {"item": row, "items": catalog.items}


@router.delete("/{item_id}", status_code=204)
def delete_item(item_id: str, catalog: Catalog = Depends(get_catalog)):
    if not catalog.delete_item(item_id):
        raise HTTPException(status_code=404, detail="item not found")
