"""
CSV bulk import for categories and items.

Rows are processed one at a time in file order. A failing row (validation,
unknown category, or a storage error on insert) is recorded and skipped; it
never stops the rows after it, and rows inserted before it stay committed.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Literal, Optional

from ..logs import json_log

ImportKind = Literal["categories", "items"]
ImportRow = dict  # column name -> trimmed raw text

MAX_DISPLAY_ERRORS = 20

CATEGORY_TEMPLATE = (
    "name,subcategory,brand\n"
    "Electronics,Mobile Phones,Samsung\n"
    "Electronics,Laptops,HP\n"
    "Food,Snacks,\n"
)
ITEM_TEMPLATE = (
    "name,code,barcode,category_name,subcategory,cost,price,mrp,stock\n"
    "Product 1,PROD001,1234567890,Electronics,Mobile Phones,100,150,200,50\n"
    "Product 2,PROD002,,Electronics,Laptops,500,750,900,25\n"
)


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed, "errors": list(self.errors)}


def template_for(kind: ImportKind) -> str:
    return CATEGORY_TEMPLATE if kind == "categories" else ITEM_TEMPLATE


def _is_blank_record(fields: list[str]) -> bool:
    return not fields or (len(fields) == 1 and not fields[0].strip())


def parse_delimited_text(text: str) -> list[ImportRow]:
    """
    Parse CSV text into one dict per data row, keyed by the trimmed header names.

    Blank lines are skipped, quoted fields may contain commas and `""` escapes a
    quote. Rows shorter than the header get "" for the missing columns; extra
    fields are ignored.
    """
    records = [r for r in csv.reader(io.StringIO((text or "").lstrip("\ufeff"))) if not _is_blank_record(r)]
    if not records:
        return []
    headers = [h.strip() for h in records[0]]
    rows: list[ImportRow] = []
    for values in records[1:]:
        row: ImportRow = {}
        for i, h in enumerate(headers):
            row[h] = values[i].strip() if i < len(values) else ""
        rows.append(row)
    return rows


def _blank(v: Any) -> bool:
    return v is None or not str(v).strip()


def _to_decimal_or_none(v: Any) -> Optional[Decimal]:
    try:
        if _blank(v):
            return None
        d = Decimal(str(v).strip())
        if not d.is_finite():
            return None
        return d
    except (InvalidOperation, ValueError):
        return None


def validate_category_row(row: ImportRow, index: int) -> Optional[str]:
    """Return an error message for the row at 0-based `index`, or None when valid."""
    if _blank(row.get("name")):
        return f"Row {index + 1}: Category name is required"
    return None


def validate_item_row(row: ImportRow, index: int) -> Optional[str]:
    n = index + 1
    if _blank(row.get("name")):
        return f"Row {n}: Item name is required"
    if _blank(row.get("code")):
        return f"Row {n}: Item code is required"
    if _to_decimal_or_none(row.get("price")) is None:
        return f"Row {n}: Valid price is required"
    if _to_decimal_or_none(row.get("cost")) is None:
        return f"Row {n}: Valid cost is required"
    return None


def resolve_category_id(
    category_name: Optional[str],
    subcategory_name: Optional[str],
    categories: Iterable[dict],
) -> Optional[str]:
    """
    Find a category id by name.

    Categories are stored one row per (name, subcategory), so the lookup tries
    the exact pair first, then the main row (no subcategory), then any row with
    that name.
    """
    if _blank(category_name):
        return None
    name = str(category_name).strip()
    cats = list(categories)

    if not _blank(subcategory_name):
        sub = str(subcategory_name).strip()
        for c in cats:
            if c.get("name") == name and c.get("subcategory") == sub:
                return str(c["id"])

    for c in cats:
        if c.get("name") == name and not c.get("subcategory"):
            return str(c["id"])

    for c in cats:
        if c.get("name") == name:
            return str(c["id"])
    return None


def _opt(row: ImportRow, key: str) -> Optional[str]:
    v = (row.get(key) or "").strip()
    return v or None


def category_payload(row: ImportRow) -> dict:
    return {
        "name": row["name"].strip(),
        "subcategory": _opt(row, "subcategory"),
        "brand": _opt(row, "brand"),
    }


def _parse_stock(raw: Optional[str]) -> int:
    if _blank(raw):
        return 0
    try:
        return int(Decimal(str(raw).strip()))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid stock value '{raw}'") from None


def item_payload(row: ImportRow, category_id: Optional[str]) -> dict:
    mrp_raw = _opt(row, "mrp")
    mrp = _to_decimal_or_none(mrp_raw)
    if mrp_raw is not None and mrp is None:
        raise ValueError(f"Invalid mrp value '{mrp_raw}'")
    return {
        "name": row["name"].strip(),
        "code": row["code"].strip(),
        "barcode": _opt(row, "barcode"),
        "category_id": category_id or None,
        "subcategory": _opt(row, "subcategory"),
        "cost": _to_decimal_or_none(row.get("cost")),
        "price": _to_decimal_or_none(row.get("price")),
        "mrp": mrp,
        "stock": _parse_stock(row.get("stock")),
    }


def run_import(
    rows: list[ImportRow],
    kind: ImportKind,
    categories: Iterable[dict],
    insert: Callable[[dict], Any],
    progress: Optional[Callable[[int, int], None]] = None,
    max_errors: int = MAX_DISPLAY_ERRORS,
) -> ImportResult:
    """
    Validate and insert `rows` sequentially.

    `categories` is read once up front; categories created by this run (or by
    anyone else while it runs) are not visible to item name resolution.
    `insert` receives the row payload and raises on failure. `progress` is
    called with (rows processed so far, total rows) after each row.

    The returned error list is capped at `max_errors`; `failed` is the true count.
    """
    snapshot = list(categories)
    total = len(rows)
    result = ImportResult()
    errors: list[str] = []
    validate = validate_category_row if kind == "categories" else validate_item_row

    json_log("info", "import.started", kind=kind, rows=total)
    for i, row in enumerate(rows):
        error = validate(row, i)

        if error is None:
            try:
                if kind == "categories":
                    payload = category_payload(row)
                else:
                    category_id = _opt(row, "category_id")
                    category_name = _opt(row, "category_name")
                    if not category_id and category_name:
                        category_id = resolve_category_id(category_name, _opt(row, "subcategory"), snapshot)
                        if not category_id:
                            error = f'Row {i + 1}: Category "{category_name}" not found'
                    payload = item_payload(row, category_id) if error is None else None
                if payload is not None:
                    insert(payload)
                    result.success += 1
            except Exception as ex:
                error = f"Row {i + 1}: {str(ex) or 'Failed to import'}"

        if error is not None:
            errors.append(error)
            result.failed += 1
            json_log("warning", "import.row_failed", kind=kind, row=i + 1, error=error)

        if progress is not None:
            progress(i + 1, total)

    result.errors = errors[:max_errors]
    json_log("info", "import.completed", kind=kind, success=result.success, failed=result.failed)
    return result
