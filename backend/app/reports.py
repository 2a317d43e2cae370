"""
Sales and inventory aggregation over transaction line snapshots.

Each transaction stores the cart lines it was paid for in `items_json`. Lines
come in two shapes: `{"item": {...}, "quantity": n}` (cart lines) or a flat
item dict; both are accepted. A transaction whose snapshot does not parse
contributes nothing to line-based figures.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Literal, Optional

from .pricing import format_currency, money, to_decimal

Period = Literal["overall", "all", "today", "week", "month", "year"]

ZERO = Decimal("0")


def _dec(v: Any) -> Decimal:
    try:
        d = to_decimal(v)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return d if d.is_finite() else ZERO


def _tx_time(tx: dict) -> Optional[datetime]:
    raw = tx.get("created_at")
    if raw is None:
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        try:
            dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def period_start(period: Period, now: datetime) -> Optional[datetime]:
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "year":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


def filter_transactions(txs: Iterable[dict], period: Period = "overall", now: Optional[datetime] = None) -> list[dict]:
    txs = list(txs)
    now = now or datetime.now(timezone.utc)
    start = period_start(period, now)
    if start is None:
        return txs
    out = []
    for tx in txs:
        t = _tx_time(tx)
        if t is not None and t >= start:
            out.append(tx)
    return out


def transaction_lines(tx: dict) -> list[tuple[dict, int]]:
    raw = tx.get("items_json")
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []
    if not isinstance(raw, list):
        return []
    lines = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        item = entry.get("item") if isinstance(entry.get("item"), dict) else entry
        qty = int(_dec(entry.get("quantity"))) or 1
        lines.append((item, qty))
    return lines


def transaction_profit_loss(tx: dict) -> tuple[Decimal, Decimal]:
    # Lines without a cost are left out: their margin is unknown.
    profit = ZERO
    loss = ZERO
    for item, qty in transaction_lines(tx):
        cost = _dec(item.get("cost"))
        if cost <= 0:
            continue
        diff = _dec(item.get("price")) - cost
        if diff > 0:
            profit += diff * qty
        elif diff < 0:
            loss += -diff * qty
    return profit, loss


def sales_summary(txs: Iterable[dict]) -> dict:
    txs = list(txs)
    revenue = sum((_dec(tx.get("total_amount")) for tx in txs), ZERO)
    count = len(txs)
    cost = ZERO
    profit = ZERO
    for tx in txs:
        for item, qty in transaction_lines(tx):
            c = _dec(item.get("cost"))
            cost += c * qty
            profit += (_dec(item.get("price")) - c) * qty
    return {
        "revenue": money(revenue),
        "transactions": count,
        "average_order_value": money(revenue / count) if count else money(ZERO),
        "cost_of_goods": money(cost),
        "profit": money(profit),
        "profit_margin": money(profit / revenue * 100) if revenue > 0 else money(ZERO),
    }


def investment_summary(items: Iterable[dict], txs: Iterable[dict]) -> dict:
    current = sum((_dec(i.get("stock")) * _dec(i.get("cost")) for i in items), ZERO)
    purchased = ZERO
    for tx in txs:
        for item, qty in transaction_lines(tx):
            purchased += _dec(item.get("cost")) * qty
    return {
        "current_inventory": money(current),
        "purchased_amount": money(purchased),
        "total_investment": money(current + purchased),
    }


def top_selling_items(txs: Iterable[dict], limit: int = 10) -> list[dict]:
    acc: dict[str, dict] = {}
    for tx in txs:
        for item, qty in transaction_lines(tx):
            key = str(item.get("id") or item.get("code") or item.get("name") or "")
            price = _dec(item.get("price"))
            cost = _dec(item.get("cost"))
            row = acc.setdefault(key, {"item": item, "quantity_sold": 0, "revenue": ZERO, "cost": ZERO})
            row["quantity_sold"] += qty
            row["revenue"] += price * qty
            row["cost"] += cost * qty
    rows = sorted(acc.values(), key=lambda r: r["quantity_sold"], reverse=True)[:limit]
    return [
        {
            "item": r["item"],
            "quantity_sold": r["quantity_sold"],
            "revenue": money(r["revenue"]),
            "profit": money(r["revenue"] - r["cost"]),
        }
        for r in rows
    ]


def _category_name(categories: list[dict], category_id: Any) -> str:
    cat = next((c for c in categories if str(c.get("id")) == str(category_id)), None)
    return (cat or {}).get("name") or "Uncategorized"


def category_performance(txs: Iterable[dict], categories: Iterable[dict]) -> list[dict]:
    cats = list(categories)
    acc: dict[str, dict] = {}
    for tx in txs:
        for item, qty in transaction_lines(tx):
            if not item.get("category_id"):
                continue
            name = _category_name(cats, item["category_id"])
            price = _dec(item.get("price"))
            cost = _dec(item.get("cost"))
            row = acc.setdefault(name, {"name": name, "revenue": ZERO, "items": 0, "profit": ZERO})
            row["revenue"] += price * qty
            row["items"] += qty
            row["profit"] += (price - cost) * qty
    rows = sorted(acc.values(), key=lambda r: r["revenue"], reverse=True)
    return [{**r, "revenue": money(r["revenue"]), "profit": money(r["profit"])} for r in rows]


def payment_method_stats(txs: Iterable[dict]) -> list[dict]:
    acc: dict[str, dict] = {}
    for tx in txs:
        method = str(tx.get("payment_method") or "")
        row = acc.setdefault(method, {"method": method.capitalize(), "count": 0, "amount": ZERO})
        row["count"] += 1
        row["amount"] += _dec(tx.get("total_amount"))
    return [{**r, "amount": money(r["amount"])} for r in acc.values()]


def low_stock_items(items: Iterable[dict], threshold: int = 10, limit: int = 10) -> list[dict]:
    low = [i for i in items if 0 < int(_dec(i.get("stock"))) <= threshold]
    low.sort(key=lambda i: int(_dec(i.get("stock"))))
    return low[:limit]


def category_inventory_value(items: Iterable[dict], categories: Iterable[dict]) -> list[dict]:
    cats = list(categories)
    acc: dict[str, dict] = {}
    for item in items:
        if not item.get("category_id"):
            continue
        name = _category_name(cats, item["category_id"])
        stock = int(_dec(item.get("stock")))
        row = acc.setdefault(name, {"name": name, "value": ZERO, "items": 0})
        row["value"] += stock * _dec(item.get("cost"))
        row["items"] += stock
    rows = sorted(acc.values(), key=lambda r: r["value"], reverse=True)
    return [{**r, "value": money(r["value"])} for r in rows]


def sales_csv(txs: Iterable[dict], customers: Iterable[dict] = (), currency_symbol: str = "₹") -> str:
    names = {str(c.get("id")): c.get("name") for c in customers}
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Time", "Order ID", "Customer", "Items Count", "Payment Method", "Amount", "Profit/Loss"])
    for tx in txs:
        t = _tx_time(tx)
        cid = tx.get("transaction_customer_id")
        customer = (names.get(str(cid)) if cid else None) or "Walk-in"
        profit, loss = transaction_profit_loss(tx)
        writer.writerow(
            [
                t.date().isoformat() if t else "",
                t.strftime("%H:%M:%S") if t else "",
                str(tx.get("id") or "")[:8].upper(),
                customer,
                len(transaction_lines(tx)),
                str(tx.get("payment_method") or "").upper(),
                format_currency(tx.get("total_amount") or 0, currency_symbol),
                format_currency(profit - loss, currency_symbol),
            ]
        )
    return output.getvalue()
