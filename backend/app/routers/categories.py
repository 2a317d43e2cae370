from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from ..catalog import Catalog
from ..deps import get_catalog

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: str
    subcategory: Optional[str] = None
    brand: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    subcategory: Optional[str] = None
    brand: Optional[str] = None


def _clean(v: Optional[str]) -> Optional[str]:
    v = (v or "").strip()
    return v or None


@router.get("")
def list_categories(catalog: Catalog = Depends(get_catalog)):
    catalog.load_categories()
    if catalog.last_error:
        raise HTTPException(status_code=502, detail=catalog.last_error)
    return {"categories": catalog.categories}


@router.post("", status_code=201)
def create_category(data: CategoryIn, catalog: Catalog = Depends(get_catalog)):
    name = (data.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    row = catalog.add_category(
        {"name": name, "subcategory": _clean(data.subcategory), "brand": _clean(data.brand)}
    )
    return {"category": row, "categories": catalog.categories}


@router.patch("/{category_id}")
def update_category(category_id: str, data: CategoryUpdate, catalog: Catalog = Depends(get_catalog)):
    patch = data.model_dump(exclude_unset=True)
    if not patch:
        return {"ok": True}
    if "name" in patch:
        nm = (patch["name"] or "").strip()
        if not nm:
            raise HTTPException(status_code=400, detail="name cannot be empty")
        patch["name"] = nm
    for k in ("subcategory", "brand"):
        if k in patch:
            patch[k] = _clean(patch[k])
    row = catalog.update_category(category_id, patch)
    if not row:
        raise HTTPException(status_code=404, detail="category not found")
    return {"category": row, "categories": catalog.categories}


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: str, catalog: Catalog = Depends(get_catalog)):
    if not catalog.delete_category(category_id):
        raise HTTPException(status_code=404, detail="category not found")
