"""
Cart pricing.

All amounts are Decimal. Nothing is rounded while computing: subtotal, tax and
total carry full precision and are quantized to cents only when shown or
persisted (see `money()`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional

CENT = Decimal("0.01")


def to_decimal(v: Any, default: Decimal = Decimal("0")) -> Decimal:
    if v is None:
        return default
    if isinstance(v, Decimal):
        return v
    s = str(v).strip()
    if not s:
        return default
    return Decimal(s)


def money(v: Any) -> Decimal:
    return to_decimal(v).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(v: Any, symbol: str = "₹") -> str:
    return f"{symbol}{money(v):.2f}"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    code: str
    price: Decimal
    cost: Decimal = Decimal("0")
    stock: int = 0
    barcode: Optional[str] = None
    category_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Product":
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            code=str(row.get("code") or ""),
            price=to_decimal(row.get("price")),
            cost=to_decimal(row.get("cost")),
            stock=int(row.get("stock") or 0),
            barcode=row.get("barcode") or None,
            category_id=(str(row["category_id"]) if row.get("category_id") else None),
        )

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "barcode": self.barcode,
            "category_id": self.category_id,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
        }


@dataclass
class LineItem:
    product: Product
    quantity: int
    line_total: Decimal = Decimal("0")

    def __post_init__(self):
        self.line_total = self.quantity * self.product.price


@dataclass
class Cart:
    lines: List[LineItem] = field(default_factory=list)
    tax_rate: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")

    def find(self, product_id: str) -> Optional[LineItem]:
        return next((ln for ln in self.lines if ln.product.id == product_id), None)


@dataclass(frozen=True)
class PaymentResult:
    total: Decimal
    received: Decimal
    change: Decimal
    discount: Decimal


def add_line(cart: Cart, product: Product, quantity: int = 1) -> None:
    # Stock is only checked (and decremented) at checkout.
    existing = cart.find(product.id)
    if existing is not None:
        existing.quantity += quantity
        existing.line_total = existing.quantity * existing.product.price
        return
    cart.lines.append(LineItem(product=product, quantity=quantity))


def remove_line(cart: Cart, product_id: str) -> None:
    cart.lines = [ln for ln in cart.lines if ln.product.id != product_id]


def set_quantity(cart: Cart, product_id: str, quantity: int) -> None:
    if quantity <= 0:
        remove_line(cart, product_id)
        return
    line = cart.find(product_id)
    if line is None:
        return
    line.quantity = quantity
    line.line_total = quantity * line.product.price


def set_tax_rate(cart: Cart, rate: Any) -> None:
    cart.tax_rate = to_decimal(rate)


def set_discount(cart: Cart, amount: Any) -> None:
    cart.discount = to_decimal(amount)


def clear(cart: Cart) -> None:
    # The tax rate is a store setting and survives a clear; the discount does not.
    cart.lines = []
    cart.discount = Decimal("0")


def subtotal(cart: Cart) -> Decimal:
    return sum((ln.line_total for ln in cart.lines), Decimal("0"))


def tax(cart: Cart) -> Decimal:
    return subtotal(cart) * cart.tax_rate / Decimal("100")


def discount_amount(cart: Cart) -> Decimal:
    return cart.discount


def total(cart: Cart) -> Decimal:
    # Not floored at zero: a discount larger than subtotal + tax gives a negative total.
    return subtotal(cart) + tax(cart) - discount_amount(cart)


def item_count(cart: Cart) -> int:
    return sum(ln.quantity for ln in cart.lines)


def settle_cash(total_amount: Any, received: Any = None) -> PaymentResult:
    """
    Settle a cash payment.

    A blank received amount means the customer paid exactly. An underpayment is
    not rejected: the shortfall is reported as a discount granted at the till.
    """
    t = to_decimal(total_amount)
    if received is None or (isinstance(received, str) and not received.strip()):
        r = t
    else:
        r = to_decimal(received)
    diff = r - t
    if diff >= 0:
        return PaymentResult(total=t, received=r, change=diff, discount=Decimal("0"))
    return PaymentResult(total=t, received=r, change=Decimal("0"), discount=-diff)


def cart_summary(cart: Cart) -> dict:
    return {
        "lines": [
            {
                "item": ln.product.snapshot(),
                "quantity": ln.quantity,
                "subtotal": money(ln.line_total),
            }
            for ln in cart.lines
        ],
        "tax_rate": cart.tax_rate,
        "subtotal": money(subtotal(cart)),
        "tax": money(tax(cart)),
        "discount": money(discount_amount(cart)),
        "total": money(total(cart)),
        "item_count": item_count(cart),
    }
