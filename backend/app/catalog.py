from __future__ import annotations

from typing import Optional

from .storage import Storage, StorageError


class Catalog:
    """
    In-memory mirror of an owner's categories and items.

    Every write is followed by a reload of the affected list, so the mirror
    only ever holds what the backend returned. Load failures are kept in
    `last_error` and leave the previous list in place; write failures are
    recorded and re-raised.
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self.categories: list[dict] = []
        self.items: list[dict] = []
        self.last_error: Optional[str] = None

    def load_categories(self) -> list[dict]:
        try:
            self.categories = self.storage.list_categories()
            self.last_error = None
        except StorageError as ex:
            self.last_error = ex.message
        return self.categories

    def load_items(self) -> list[dict]:
        try:
            self.items = self.storage.list_items()
            self.last_error = None
        except StorageError as ex:
            self.last_error = ex.message
        return self.items

    def _write(self, fn, *args):
        try:
            return fn(*args)
        except StorageError as ex:
            self.last_error = ex.message
            raise

    def add_category(self, data: dict) -> dict:
        row = self._write(self.storage.create_category, data)
        self.load_categories()
        return row

    def update_category(self, category_id: str, patch: dict) -> Optional[dict]:
        row = self._write(self.storage.update_category, category_id, patch)
        self.load_categories()
        return row

    def delete_category(self, category_id: str) -> bool:
        ok = self._write(self.storage.delete_category, category_id)
        self.load_categories()
        return ok

    def add_item(self, data: dict) -> dict:
        row = self._write(self.storage.create_item, data)
        self.load_items()
        return row

    def update_item(self, item_id: str, patch: dict) -> Optional[dict]:
        row = self._write(self.storage.update_item, item_id, patch)
        self.load_items()
        return row

    def delete_item(self, item_id: str) -> bool:
        ok = self._write(self.storage.delete_item, item_id)
        self.load_items()
        return ok

    def search_items(self, query: str) -> list[dict]:
        try:
            return self.storage.search_items(query)
        except StorageError as ex:
            self.last_error = ex.message
            return []

    def get_item_by_barcode(self, barcode: str) -> Optional[dict]:
        try:
            return self.storage.get_item_by_barcode(barcode)
        except StorageError as ex:
            self.last_error = ex.message
            return None
