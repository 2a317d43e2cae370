from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException

from .carts import carts
from .catalog import Catalog
from .pricing import Cart
from .storage import Storage


def get_owner_id(x_owner_id: Optional[str] = Header(None, alias="X-Owner-Id")) -> str:
    owner_id = (x_owner_id or "").strip()
    if not owner_id:
        raise HTTPException(status_code=400, detail="missing owner id")
    return owner_id


def get_storage(owner_id: str = Depends(get_owner_id)) -> Storage:
    return Storage(owner_id)


def get_catalog(storage: Storage = Depends(get_storage)) -> Catalog:
    return Catalog(storage)


def get_cart_session(x_cart_session: Optional[str] = Header(None, alias="X-Cart-Session")) -> str:
    # A till that never sends a session id shares the owner's default cart.
    return (x_cart_session or "").strip() or "default"


def get_cart(owner_id: str = Depends(get_owner_id), session_id: str = Depends(get_cart_session)) -> Iterator[Cart]:
    cart = carts.get(owner_id, session_id)
    try:
        yield cart
    finally:
        carts.release(owner_id, session_id)
