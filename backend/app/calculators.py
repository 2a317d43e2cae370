from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .pricing import money

HUNDRED = Decimal("100")


def _num(v: Any) -> Optional[Decimal]:
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    try:
        d = Decimal(str(v).strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def discount(price: Any, percent: Any) -> Optional[dict]:
    p, pct = _num(price), _num(percent)
    if p is None or pct is None:
        return None
    amount = p * pct / HUNDRED
    return {"discount_amount": money(amount), "final_price": money(p - amount)}


def gross_margin(cost: Any, selling: Any) -> Optional[dict]:
    c, s = _num(cost), _num(selling)
    if c is None or s is None or s == 0:
        return None
    profit = s - c
    return {
        "profit": money(profit),
        "gm_percent": money(profit / s * HUNDRED),
        # Markup is undefined for a zero cost.
        "markup_percent": money(profit / c * HUNDRED) if c != 0 else None,
    }


def markup(cost: Any, percent: Any) -> Optional[dict]:
    c, pct = _num(cost), _num(percent)
    if c is None or pct is None:
        return None
    amount = c * pct / HUNDRED
    return {"markup_amount": money(amount), "selling_price": money(c + amount)}


def break_even(fixed_costs: Any, variable_cost: Any, selling_price: Any) -> Optional[dict]:
    f, v, s = _num(fixed_costs), _num(variable_cost), _num(selling_price)
    if f is None or v is None or s is None:
        return None
    contribution = s - v
    if contribution <= 0:
        return None
    units = f / contribution
    return {"break_even_units": money(units), "break_even_revenue": money(units * s)}


def price_for_margin(cost: Any, margin_percent: Any) -> Optional[dict]:
    c, m = _num(cost), _num(margin_percent)
    if c is None or m is None or m >= HUNDRED:
        return None
    selling = c / (1 - m / HUNDRED)
    return {"selling_price": money(selling), "profit": money(selling - c)}
