import os
import sys
import uuid
from datetime import datetime, timezone

import pytest


# Allow running pytest from either the repo root or from within `backend/`.
# Tests import `backend.*`, which requires the repo root on sys.path.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from backend.app.storage import StorageError  # noqa: E402


class FakeStorage:
    """In-memory stand-in for backend.app.storage.Storage."""

    def __init__(self, owner_id="owner-1"):
        self.owner_id = owner_id
        self.categories = []
        self.items = []
        self.customers = []
        self.transactions = []
        self.company = None
        self.calls = []
        self.fail_on = {}

    def _maybe_fail(self, op, data=None):
        self.calls.append((op, data))
        err = self.fail_on.get(op)
        if callable(err):
            err = err(data)
        if err is not None:
            raise err

    def _new(self, data):
        return {"id": str(uuid.uuid4()), "owner_id": self.owner_id, "created_at": datetime.now(timezone.utc), **data}

    def list_categories(self):
        self._maybe_fail("list_categories")
        return list(reversed(self.categories))

    def create_category(self, data):
        self._maybe_fail("create_category", data)
        row = self._new(dict(data))
        self.categories.append(row)
        return row

    def update_category(self, category_id, patch):
        self._maybe_fail("update_category", patch)
        row = next((c for c in self.categories if c["id"] == category_id), None)
        if row:
            row.update(patch)
        return row

    def delete_category(self, category_id):
        self._maybe_fail("delete_category", category_id)
        before = len(self.categories)
        self.categories = [c for c in self.categories if c["id"] != category_id]
        return len(self.categories) != before

    def list_items(self):
        self._maybe_fail("list_items")
        return list(reversed(self.items))

    def get_item(self, item_id):
        self._maybe_fail("get_item", item_id)
        return next((i for i in self.items if i["id"] == item_id), None)

    def create_item(self, data):
        self._maybe_fail("create_item", data)
        row = self._new(dict(data))
        self.items.append(row)
        return row

    def update_item(self, item_id, patch):
        self._maybe_fail("update_item", patch)
        row = next((i for i in self.items if i["id"] == item_id), None)
        if row:
            row.update(patch)
        return row

    def delete_item(self, item_id):
        self._maybe_fail("delete_item", item_id)
        before = len(self.items)
        self.items = [i for i in self.items if i["id"] != item_id]
        return len(self.items) != before

    def search_items(self, query):
        self._maybe_fail("search_items", query)
        q = query.lower()
        return [i for i in self.items if q in i["name"].lower() or q in i["code"].lower()]

    def get_item_by_barcode(self, barcode):
        self._maybe_fail("get_item_by_barcode", barcode)
        return next((i for i in self.items if i.get("barcode") == barcode), None)

    def list_transactions(self):
        self._maybe_fail("list_transactions")
        return list(reversed(self.transactions))

    def create_transaction(self, data):
        self._maybe_fail("create_transaction", data)
        row = self._new(dict(data))
        self.transactions.append(row)
        return row

    def list_customers(self):
        self._maybe_fail("list_customers")
        return list(reversed(self.customers))

    def create_customer(self, data):
        self._maybe_fail("create_customer", data)
        row = self._new(dict(data))
        self.customers.append(row)
        return row

    def update_customer(self, customer_id, patch):
        self._maybe_fail("update_customer", patch)
        row = next((c for c in self.customers if c["id"] == customer_id), None)
        if row:
            row.update(patch)
        return row

    def delete_customer(self, customer_id):
        self._maybe_fail("delete_customer", customer_id)
        before = len(self.customers)
        self.customers = [c for c in self.customers if c["id"] != customer_id]
        return len(self.customers) != before

    def get_company(self):
        self._maybe_fail("get_company")
        return self.company

    def save_company(self, data):
        self._maybe_fail("save_company", data)
        self.company = {**(self.company or {"owner_id": self.owner_id}), **data}
        return self.company


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def storage_error():
    def _make(message="boom", code=None):
        return StorageError(message, code=code)

    return _make
