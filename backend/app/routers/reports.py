from fastapi import APIRouter, Depends, HTTPException, Response
from datetime import date
from typing import Optional

from .. import reports
from ..config import settings
from ..deps import get_storage
from ..storage import Storage
from ..validation import ReportPeriod

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary")
def summary(period: ReportPeriod = "overall", top: int = 10, storage: Storage = Depends(get_storage)):
    """
    Dashboard report for one period.

    Investment figures are always computed over all transactions; everything
    else only covers the selected period.
    """
    if top <= 0 or top > 100:
        raise HTTPException(status_code=400, detail="top must be between 1 and 100")
    all_txs = storage.list_transactions()
    items = storage.list_items()
    categories = storage.list_categories()
    txs = reports.filter_transactions(all_txs, period)
    return {
        "period": period,
        "sales": reports.sales_summary(txs),
        "investment": reports.investment_summary(items, all_txs),
        "top_items": reports.top_selling_items(txs, top),
        "categories": reports.category_performance(txs, categories),
        "payment_methods": reports.payment_method_stats(txs),
        "low_stock": reports.low_stock_items(items, settings.low_stock_threshold),
        "inventory_by_category": reports.category_inventory_value(items, categories),
    }


@router.get("/sales")
def sales(period: ReportPeriod = "today", format: Optional[str] = None, storage: Storage = Depends(get_storage)):
    txs = reports.filter_transactions(storage.list_transactions(), period)
    if format == "csv":
        content = reports.sales_csv(txs, storage.list_customers(), settings.currency_symbol)
        filename = f"sales-report-{period}-{date.today().isoformat()}.csv"
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    rows = []
    for tx in txs:
        profit, loss = reports.transaction_profit_loss(tx)
        rows.append({**tx, "profit": profit, "loss": loss})
    totals = reports.sales_summary(txs)
    return {"period": period, "transactions": rows, "revenue": totals["revenue"], "count": totals["transactions"]}
