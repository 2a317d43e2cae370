import pytest

from backend.app.catalog import Catalog
from backend.app.storage import StorageError


def test_writes_reload_the_list_from_storage(fake_storage):
    cat = Catalog(fake_storage)

    row = cat.add_category({"name": "Food"})
    assert [c["id"] for c in cat.categories] == [row["id"]]

    cat.update_category(row["id"], {"name": "Groceries"})
    assert cat.categories[0]["name"] == "Groceries"

    assert cat.delete_category(row["id"]) is True
    assert cat.categories == []
    ops = [op for op, _ in fake_storage.calls]
    assert ops.count("list_categories") == 3


def test_item_writes_reload_items(fake_storage):
    cat = Catalog(fake_storage)
    a = cat.add_item({"name": "Tea", "code": "T1", "price": 10})
    b = cat.add_item({"name": "Milk", "code": "M1", "price": 20})
    assert [i["id"] for i in cat.items] == [b["id"], a["id"]]

    cat.update_item(a["id"], {"stock": 3})
    assert next(i for i in cat.items if i["id"] == a["id"])["stock"] == 3

    cat.delete_item(b["id"])
    assert [i["id"] for i in cat.items] == [a["id"]]


def test_load_failure_keeps_previous_list_and_records_error(fake_storage, storage_error):
    cat = Catalog(fake_storage)
    cat.add_category({"name": "Food"})
    fake_storage.fail_on["list_categories"] = storage_error("Failed to load categories: down (Code: unknown)")

    out = cat.load_categories()

    assert [c["name"] for c in out] == ["Food"]
    assert cat.last_error == "Failed to load categories: down (Code: unknown)"


def test_write_failure_is_recorded_and_raised(fake_storage, storage_error):
    cat = Catalog(fake_storage)
    fake_storage.fail_on["create_item"] = storage_error("Failed to save item: duplicate (Code: 23505)", code="23505")

    with pytest.raises(StorageError) as ex:
        cat.add_item({"name": "Tea", "code": "T1", "price": 1})

    assert ex.value.code == "23505"
    assert cat.last_error.startswith("Failed to save item")
    assert cat.items == []


def test_search_and_barcode_lookup_degrade_to_empty(fake_storage, storage_error):
    cat = Catalog(fake_storage)
    cat.add_item({"name": "Green Tea", "code": "GT", "barcode": "890", "price": 1})

    assert [i["code"] for i in cat.search_items("tea")] == ["GT"]
    assert cat.get_item_by_barcode("890")["code"] == "GT"

    fake_storage.fail_on["search_items"] = storage_error("search down")
    fake_storage.fail_on["get_item_by_barcode"] = storage_error("lookup down")
    assert cat.search_items("tea") == []
    assert cat.get_item_by_barcode("890") is None
    assert cat.last_error == "lookup down"
