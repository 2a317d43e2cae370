import importlib.util
import json
import os
import sys

import pytest

SCRIPT = os.path.join(os.path.dirname(__file__), "..", "..", "scripts", "import_catalog_csv_via_api.py")


@pytest.fixture
def cli(monkeypatch):
    spec = importlib.util.spec_from_file_location("import_catalog_csv_via_api", SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, spec.name, mod)
    spec.loader.exec_module(mod)
    return mod


def test_dry_run_reports_invalid_rows(cli, capsys):
    code = cli.dry_run("categories", "name,subcategory\nFood,Snacks\n,Drinks\n")

    out = json.loads(capsys.readouterr().out)
    assert code == 1
    assert out == {"kind": "categories", "total_rows": 2, "invalid": 1, "errors": ["Row 2: Category name is required"]}


def test_dry_run_clean_items_file(cli, capsys):
    assert cli.dry_run("items", "name,code,cost,price\nTea,T1,1,2\n") == 0
    assert json.loads(capsys.readouterr().out)["invalid"] == 0


def test_dry_run_empty_file_exits(cli, capsys):
    with pytest.raises(SystemExit) as ex:
        cli.dry_run("items", "")
    assert ex.value.code == 2
    assert "CSV file is empty or invalid" in capsys.readouterr().err
