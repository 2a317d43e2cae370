from __future__ import annotations

import json
from typing import Any, Callable, Optional

import psycopg

from .db import get_conn, set_owner_context
from .logs import json_log

CATEGORY_FIELDS = ("name", "subcategory", "brand")
ITEM_FIELDS = ("name", "code", "barcode", "category_id", "subcategory", "cost", "price", "mrp", "stock", "image_url")
CUSTOMER_FIELDS = ("name", "email", "phone", "address", "city", "state", "pincode")
TRANSACTION_FIELDS = (
    "transaction_customer_id",
    "total_amount",
    "payment_method",
    "received_amount",
    "change_amount",
    "items_json",
)
COMPANY_FIELDS = ("name", "address", "city", "state", "pincode", "phone", "email", "gstin", "website", "logo_url")


class StorageError(Exception):
    """A storage call failed. `code` is the database error code when one is known."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


def _db_message(ex: Exception) -> str:
    try:
        primary = ex.diag.message_primary
    except Exception:
        primary = None
    return str(primary or ex).strip() or ex.__class__.__name__


def _pick(data: dict, allowed: tuple) -> dict:
    return {k: v for k, v in (data or {}).items() if k in allowed}


class Storage:
    """
    Storage backend for one store owner.

    Every call opens a pooled connection, scopes it to the owner and runs a
    single statement. Database failures surface as StorageError.
    """

    def __init__(self, owner_id: str, conn_factory: Callable = get_conn):
        self.owner_id = owner_id
        self._conn_factory = conn_factory

    def _run(self, action: str, fn: Callable[[Any], Any]):
        try:
            with self._conn_factory() as conn:
                set_owner_context(conn, self.owner_id)
                with conn.cursor() as cur:
                    return fn(cur)
        except psycopg.Error as ex:
            code = getattr(ex, "sqlstate", None)
            msg = f"Failed to {action}: {_db_message(ex)} (Code: {code or 'unknown'})"
            json_log("error", "storage.error", owner_id=self.owner_id, action=action, code=code, error=_db_message(ex))
            raise StorageError(msg, code=code) from ex

    def _list(self, action: str, table: str) -> list[dict]:
        def q(cur):
            cur.execute(
                f"SELECT * FROM {table} WHERE owner_id = %s ORDER BY created_at DESC",
                (self.owner_id,),
            )
            return list(cur.fetchall())

        return self._run(action, q)

    def _insert(self, action: str, table: str, values: dict) -> dict:
        cols = list(values.keys())

        def q(cur):
            cur.execute(
                f"""
                INSERT INTO {table} (id, owner_id{''.join(', ' + c for c in cols)})
                VALUES (gen_random_uuid(), %s{', %s' * len(cols)})
                RETURNING *
                """,
                [self.owner_id, *values.values()],
            )
            return cur.fetchone()

        return self._run(action, q)

    def _update(self, action: str, table: str, row_id: str, values: dict, touch: bool = False) -> Optional[dict]:
        fields = [f"{k} = %s" for k in values]
        params = list(values.values())
        if touch:
            fields.append("updated_at = now()")
        if not fields:
            return self._get(action, table, row_id)
        params.extend([self.owner_id, row_id])

        def q(cur):
            cur.execute(
                f"""
                UPDATE {table}
                SET {', '.join(fields)}
                WHERE owner_id = %s AND id = %s
                RETURNING *
                """,
                params,
            )
            return cur.fetchone()

        return self._run(action, q)

    def _get(self, action: str, table: str, row_id: str) -> Optional[dict]:
        def q(cur):
            cur.execute(f"SELECT * FROM {table} WHERE owner_id = %s AND id = %s", (self.owner_id, row_id))
            return cur.fetchone()

        return self._run(action, q)

    def _delete(self, action: str, table: str, row_id: str) -> bool:
        def q(cur):
            cur.execute(f"DELETE FROM {table} WHERE owner_id = %s AND id = %s", (self.owner_id, row_id))
            return cur.rowcount > 0

        return self._run(action, q)

    # Categories

    def list_categories(self) -> list[dict]:
        return self._list("load categories", "categories")

    def create_category(self, data: dict) -> dict:
        return self._insert("save category", "categories", _pick(data, CATEGORY_FIELDS))

    def update_category(self, category_id: str, patch: dict) -> Optional[dict]:
        return self._update("update category", "categories", category_id, _pick(patch, CATEGORY_FIELDS))

    def delete_category(self, category_id: str) -> bool:
        return self._delete("delete category", "categories", category_id)

    # Items

    def list_items(self) -> list[dict]:
        return self._list("load items", "items")

    def get_item(self, item_id: str) -> Optional[dict]:
        return self._get("load item", "items", item_id)

    def create_item(self, data: dict) -> dict:
        values = _pick(data, ITEM_FIELDS)
        values["stock"] = values.get("stock") or 0
        return self._insert("save item", "items", values)

    def update_item(self, item_id: str, patch: dict) -> Optional[dict]:
        return self._update("update item", "items", item_id, _pick(patch, ITEM_FIELDS))

    def delete_item(self, item_id: str) -> bool:
        return self._delete("delete item", "items", item_id)

    def search_items(self, query: str) -> list[dict]:
        like = f"%{(query or '').strip()}%"

        def q(cur):
            cur.execute(
                """
                SELECT *
                FROM items
                WHERE owner_id = %s
                  AND (name ILIKE %s OR code ILIKE %s OR (barcode IS NOT NULL AND barcode ILIKE %s))
                ORDER BY created_at DESC
                """,
                (self.owner_id, like, like, like),
            )
            return list(cur.fetchall())

        return self._run("search items", q)

    def get_item_by_barcode(self, barcode: str) -> Optional[dict]:
        def q(cur):
            cur.execute(
                "SELECT * FROM items WHERE owner_id = %s AND barcode = %s ORDER BY created_at DESC LIMIT 1",
                (self.owner_id, (barcode or "").strip()),
            )
            return cur.fetchone()

        return self._run("get item by barcode", q)

    # Transactions

    def list_transactions(self) -> list[dict]:
        return self._list("load transactions", "transactions")

    def create_transaction(self, data: dict) -> dict:
        values = _pick(data, TRANSACTION_FIELDS)
        items_json = values.get("items_json")
        if items_json is not None and not isinstance(items_json, str):
            values["items_json"] = json.dumps(items_json, default=str)
        return self._insert("save transaction", "transactions", values)

    # Customers

    def list_customers(self) -> list[dict]:
        return self._list("load customers", "customers")

    def create_customer(self, data: dict) -> dict:
        return self._insert("save customer", "customers", _pick(data, CUSTOMER_FIELDS))

    def update_customer(self, customer_id: str, patch: dict) -> Optional[dict]:
        return self._update("update customer", "customers", customer_id, _pick(patch, CUSTOMER_FIELDS), touch=True)

    def delete_customer(self, customer_id: str) -> bool:
        return self._delete("delete customer", "customers", customer_id)

    # Company settings

    def get_company(self) -> Optional[dict]:
        def q(cur):
            cur.execute("SELECT * FROM company_settings WHERE owner_id = %s", (self.owner_id,))
            return cur.fetchone()

        return self._run("load company details", q)

    def save_company(self, data: dict) -> dict:
        values = _pick(data, COMPANY_FIELDS)
        cols = list(values.keys())
        updates = [f"{c} = EXCLUDED.{c}" for c in cols] + ["updated_at = now()"]

        def q(cur):
            cur.execute(
                f"""
                INSERT INTO company_settings (owner_id{''.join(', ' + c for c in cols)})
                VALUES (%s{', %s' * len(cols)})
                ON CONFLICT (owner_id) DO UPDATE
                SET {', '.join(updates)}
                RETURNING *
                """,
                [self.owner_id, *values.values()],
            )
            return cur.fetchone()

        return self._run("save company details", q)
