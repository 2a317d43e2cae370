import threading
from decimal import Decimal
from typing import Dict, Tuple

from .config import settings
from .pricing import Cart


class CartRegistry:
    """
    One cart per (owner, till session), held in process memory only.

    A cart is removed when a request leaves it empty (cleared, checked out or
    never filled); the next request for that session starts a fresh one. The
    tax rate is remembered per owner so a new cart picks up the rate the store
    last set.
    """

    def __init__(self):
        self._carts: Dict[Tuple[str, str], Cart] = {}
        self._tax_rates: Dict[str, Decimal] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._carts)

    def get(self, owner_id: str, session_id: str) -> Cart:
        key = (owner_id, session_id)
        with self._lock:
            cart = self._carts.get(key)
            if cart is None:
                cart = Cart(tax_rate=self._tax_rates.get(owner_id, settings.default_tax_rate))
                self._carts[key] = cart
            return cart

    def remember_tax_rate(self, owner_id: str, rate: Decimal) -> None:
        with self._lock:
            if rate == settings.default_tax_rate:
                self._tax_rates.pop(owner_id, None)
            else:
                self._tax_rates[owner_id] = rate

    def release(self, owner_id: str, session_id: str) -> None:
        # An empty cart with no discount is the same as a fresh one.
        key = (owner_id, session_id)
        with self._lock:
            cart = self._carts.get(key)
            if cart is not None and not cart.lines and not cart.discount:
                del self._carts[key]


carts = CartRegistry()
