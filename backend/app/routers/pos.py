from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional

from .. import pricing
from ..config import settings
from ..carts import carts
from ..deps import get_cart, get_owner_id, get_storage
from ..logs import json_log
from ..pricing import Cart, Product, format_currency, money
from ..storage import Storage, StorageError
from ..validation import Amount, PaymentMethod, ReceivedAmount, TaxRate

router = APIRouter(prefix="/pos", tags=["pos"])


class CartLineIn(BaseModel):
    item_id: Optional[str] = None
    barcode: Optional[str] = None
    quantity: int = Field(default=1, ge=1)


class QuantityIn(BaseModel):
    quantity: int


class TaxRateIn(BaseModel):
    rate: TaxRate


class DiscountIn(BaseModel):
    amount: Amount


class CheckoutIn(BaseModel):
    payment_method: PaymentMethod
    received_amount: ReceivedAmount = None
    customer_id: Optional[str] = None


def _lookup_product(storage: Storage, data: CartLineIn) -> Product:
    row = None
    if (data.item_id or "").strip():
        row = storage.get_item(data.item_id.strip())
    elif (data.barcode or "").strip():
        row = storage.get_item_by_barcode(data.barcode)
    else:
        raise HTTPException(status_code=400, detail="item_id or barcode is required")
    if not row:
        raise HTTPException(status_code=404, detail="item not found")
    return Product.from_row(row)


@router.get("/cart")
def get_cart_summary(cart: Cart = Depends(get_cart)):
    return pricing.cart_summary(cart)


@router.post("/cart/lines")
def add_cart_line(data: CartLineIn, cart: Cart = Depends(get_cart), storage: Storage = Depends(get_storage)):
    product = _lookup_product(storage, data)
    pricing.add_line(cart, product, data.quantity)
    return pricing.cart_summary(cart)


@router.patch("/cart/lines/{item_id}")
def update_cart_line(item_id: str, data: QuantityIn, cart: Cart = Depends(get_cart)):
    pricing.set_quantity(cart, item_id, data.quantity)
    return pricing.cart_summary(cart)


@router.delete("/cart/lines/{item_id}")
def remove_cart_line(item_id: str, cart: Cart = Depends(get_cart)):
    pricing.remove_line(cart, item_id)
    return pricing.cart_summary(cart)


@router.put("/cart/tax")
def set_cart_tax(data: TaxRateIn, cart: Cart = Depends(get_cart), owner_id: str = Depends(get_owner_id)):
    pricing.set_tax_rate(cart, data.rate)
    carts.remember_tax_rate(owner_id, cart.tax_rate)
    return pricing.cart_summary(cart)


@router.put("/cart/discount")
def set_cart_discount(data: DiscountIn, cart: Cart = Depends(get_cart)):
    pricing.set_discount(cart, data.amount)
    return pricing.cart_summary(cart)


@router.delete("/cart")
def clear_cart(cart: Cart = Depends(get_cart)):
    pricing.clear(cart)
    return pricing.cart_summary(cart)


def _settle(payment_method: str, total: Decimal, received: Optional[Decimal]) -> pricing.PaymentResult:
    if payment_method == "cash":
        return pricing.settle_cash(total, received)
    # Card and UPI are always charged the exact total.
    return pricing.PaymentResult(total=total, received=total, change=Decimal("0"), discount=Decimal("0"))


def _decrement_stock(storage: Storage, cart: Cart) -> list[str]:
    """
    Take sold quantities off stock, reading each item fresh from storage.

    A line whose item no longer has enough stock is left untouched (the sale
    still stands). Failures are collected instead of raised because the
    transaction has already been recorded.
    """
    problems: list[str] = []
    for line in cart.lines:
        try:
            row = storage.get_item(line.product.id)
            if not row:
                problems.append(f"{line.product.code or line.product.id}: item not found")
                continue
            stock = int(row.get("stock") or 0)
            if stock < line.quantity:
                json_log(
                    "warning",
                    "checkout.stock_skipped",
                    item_id=line.product.id,
                    stock=stock,
                    quantity=line.quantity,
                )
                continue
            storage.update_item(line.product.id, {"stock": stock - line.quantity})
        except StorageError as ex:
            problems.append(f"{line.product.code or line.product.id}: {ex.message}")
    return problems


def _payment_message(result: pricing.PaymentResult) -> str:
    if result.discount > 0:
        return f"Discount: {format_currency(result.discount, settings.currency_symbol)}"
    if result.change > 0:
        return f"Change: {format_currency(result.change, settings.currency_symbol)}"
    return "Exact amount"


def checkout_cart(
    cart: Cart,
    storage: Storage,
    payment_method: str,
    received: Optional[Decimal] = None,
    customer_id: Optional[str] = None,
) -> dict:
    if not cart.lines:
        raise HTTPException(status_code=400, detail="cart is empty")

    result = _settle(payment_method, pricing.total(cart), received)
    lines = pricing.cart_summary(cart)["lines"]
    tx = storage.create_transaction(
        {
            "transaction_customer_id": (customer_id or "").strip() or None,
            "total_amount": money(result.total),
            "payment_method": payment_method,
            "received_amount": money(result.received),
            # Only positive change is stored; a shortfall is reported as a discount.
            "change_amount": money(result.change),
            "items_json": lines,
        }
    )
    stock_errors = _decrement_stock(storage, cart)
    pricing.clear(cart)

    json_log(
        "info",
        "checkout.completed",
        owner_id=storage.owner_id,
        transaction_id=(tx or {}).get("id"),
        total=money(result.total),
        payment_method=payment_method,
        stock_errors=len(stock_errors),
    )
    return {
        "transaction": tx,
        "change": money(result.change),
        "discount_applied": money(result.discount),
        "message": _payment_message(result),
        "stock_errors": stock_errors,
    }


@router.post("/checkout")
def checkout(data: CheckoutIn, cart: Cart = Depends(get_cart), storage: Storage = Depends(get_storage)):
    return checkout_cart(cart, storage, data.payment_method, data.received_amount, data.customer_id)
