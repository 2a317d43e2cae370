import json
from contextlib import contextmanager
from decimal import Decimal

import psycopg
import pytest

from backend.app import storage as storage_mod
from backend.app.storage import Storage, StorageError


class _FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = 0
        self._result = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((" ".join(sql.split()), list(params or [])))
        if self.conn.raise_on_execute is not None:
            raise self.conn.raise_on_execute
        self._result = self.conn.results.pop(0) if self.conn.results else None
        self.rowcount = self.conn.rowcount

    def fetchone(self):
        return self._result

    def fetchall(self):
        return self._result or []


class _FakeConn:
    def __init__(self, results=None, rowcount=1, raise_on_execute=None):
        self.results = list(results or [])
        self.rowcount = rowcount
        self.raise_on_execute = raise_on_execute
        self.executed = []

    def cursor(self):
        return _FakeCursor(self)


def _storage(monkeypatch, conn):
    owners = []
    monkeypatch.setattr(storage_mod, "set_owner_context", lambda c, owner_id: owners.append(owner_id))

    @contextmanager
    def factory():
        yield conn

    return Storage("owner-1", conn_factory=factory), owners


def test_list_scopes_to_owner_and_orders_newest_first(monkeypatch):
    conn = _FakeConn(results=[[{"id": "c1"}]])
    st, owners = _storage(monkeypatch, conn)

    assert st.list_categories() == [{"id": "c1"}]
    assert owners == ["owner-1"]
    sql, params = conn.executed[0]
    assert "FROM categories WHERE owner_id = %s ORDER BY created_at DESC" in sql
    assert params == ["owner-1"]


def test_create_item_defaults_stock_and_drops_unknown_fields(monkeypatch):
    conn = _FakeConn(results=[{"id": "i1"}])
    st, _ = _storage(monkeypatch, conn)

    st.create_item({"name": "Tea", "code": "T1", "price": Decimal("2"), "owner_id": "someone-else"})

    sql, params = conn.executed[0]
    assert sql.startswith("INSERT INTO items (id, owner_id, name, code, price, stock)")
    assert params == ["owner-1", "Tea", "T1", Decimal("2"), 0]


def test_create_transaction_serializes_line_snapshot(monkeypatch):
    conn = _FakeConn(results=[{"id": "t1"}])
    st, _ = _storage(monkeypatch, conn)
    lines = [{"item": {"id": "i1", "price": Decimal("9.50")}, "quantity": 2}]

    st.create_transaction({"total_amount": Decimal("19.00"), "payment_method": "cash", "items_json": lines})

    _, params = conn.executed[0]
    assert json.loads(params[-1]) == [{"item": {"id": "i1", "price": "9.50"}, "quantity": 2}]


def test_update_customer_touches_updated_at(monkeypatch):
    conn = _FakeConn(results=[{"id": "cu1"}])
    st, _ = _storage(monkeypatch, conn)

    st.update_customer("cu1", {"phone": "123"})

    sql, params = conn.executed[0]
    assert "SET phone = %s, updated_at = now()" in sql
    assert params == ["123", "owner-1", "cu1"]


def test_empty_item_patch_reads_current_row(monkeypatch):
    conn = _FakeConn(results=[{"id": "i1", "stock": 4}])
    st, _ = _storage(monkeypatch, conn)

    assert st.update_item("i1", {"unknown": 1}) == {"id": "i1", "stock": 4}
    assert conn.executed[0][0].startswith("SELECT * FROM items")


def test_delete_reports_whether_a_row_went_away(monkeypatch):
    st, _ = _storage(monkeypatch, _FakeConn(rowcount=0))
    assert st.delete_item("missing") is False
    st, _ = _storage(monkeypatch, _FakeConn(rowcount=1))
    assert st.delete_item("i1") is True


def test_database_error_becomes_storage_error_with_code(monkeypatch):
    err = psycopg.errors.UniqueViolation("duplicate key value violates unique constraint")
    st, _ = _storage(monkeypatch, _FakeConn(raise_on_execute=err))

    with pytest.raises(StorageError) as ex:
        st.create_item({"name": "Tea", "code": "T1", "price": 1})

    assert ex.value.code == "23505"
    assert ex.value.message.startswith("Failed to save item: ")
    assert "duplicate key value" in ex.value.message
    assert ex.value.message.endswith("(Code: 23505)")


def test_database_error_without_code(monkeypatch):
    st, _ = _storage(monkeypatch, _FakeConn(raise_on_execute=psycopg.OperationalError("server closed the connection")))

    with pytest.raises(StorageError) as ex:
        st.list_items()

    assert ex.value.code is None
    assert ex.value.message == "Failed to load items: server closed the connection (Code: unknown)"


def test_save_company_upserts_only_given_fields(monkeypatch):
    conn = _FakeConn(results=[{"owner_id": "owner-1", "name": "Shop"}])
    st, _ = _storage(monkeypatch, conn)

    st.save_company({"name": "Shop", "gstin": "X1", "owner_id": "other"})

    sql, params = conn.executed[0]
    assert sql.startswith("INSERT INTO company_settings (owner_id, name, gstin) VALUES (%s, %s, %s)")
    assert "ON CONFLICT (owner_id) DO UPDATE SET name = EXCLUDED.name, gstin = EXCLUDED.gstin, updated_at = now()" in sql
    assert params == ["owner-1", "Shop", "X1"]
