import json

import pytest

from logcentral.models import ProductInfo, ProviderType
from logcentral.product_store import ProductStore


def test_missing_file_loads_empty_list(tmp_path) -> None:
    store = ProductStore(tmp_path / "Config" / "products.json")
    assert store.load() == []


def test_malformed_file_loads_empty_list(tmp_path) -> None:
    path = tmp_path / "products.json"
    path.write_text("{not json", encoding="utf-8")
    assert ProductStore(path).load() == []


def test_invalid_entries_load_empty_list(tmp_path) -> None:
    path = tmp_path / "products.json"
    path.write_text(json.dumps([{"DatabaseName": "", "ProviderType": "MongoDB"}]), encoding="utf-8")
    assert ProductStore(path).load() == []


def test_save_creates_directory_and_round_trips(tmp_path) -> None:
    path = tmp_path / "Config" / "products.json"
    store = ProductStore(path)
    products = [
        ProductInfo("Orders", "mongodb://localhost:27017/Orders", ProviderType.MONGODB),
        ProductInfo("Billing", "Data Source=billing.sqlite", ProviderType.SQLITE),
    ]

    store.save(products)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved[1] == {
        "DatabaseName": "Billing",
        "ConnectionString": "Data Source=billing.sqlite",
        "ProviderType": "SQLite",
    }
    assert store.load() == products


def test_provider_ordinals_and_names_are_accepted(tmp_path) -> None:
    path = tmp_path / "products.json"
    path.write_text(
        json.dumps(
            [
                {"DatabaseName": "A", "ConnectionString": "a", "ProviderType": 0},
                {"DatabaseName": "B", "ConnectionString": "server=x", "ProviderType": 2},
                {"DatabaseName": "C", "ProviderType": "sqlite"},
                {"DatabaseName": "D"},
            ]
        ),
        encoding="utf-8",
    )

    loaded = ProductStore(path).load()

    assert [product.provider_type for product in loaded] == [
        ProviderType.IN_MEMORY,
        ProviderType.MYSQL,
        ProviderType.SQLITE,
        ProviderType.MONGODB,
    ]
    assert loaded[2].connection_string == ""


def test_unknown_provider_rejects_file(tmp_path) -> None:
    path = tmp_path / "products.json"
    path.write_text(json.dumps([{"DatabaseName": "A", "ProviderType": "Oracle"}]), encoding="utf-8")
    assert ProductStore(path).load() == []


def test_duplicate_names_keep_first_entry(tmp_path) -> None:
    path = tmp_path / "products.json"
    path.write_text(
        json.dumps(
            [
                {"DatabaseName": "Orders", "ConnectionString": "first", "ProviderType": "InMemory"},
                {"DatabaseName": "ORDERS", "ConnectionString": "second", "ProviderType": "InMemory"},
            ]
        ),
        encoding="utf-8",
    )

    loaded = ProductStore(path).load()

    assert len(loaded) == 1
    assert loaded[0].connection_string == "first"


def test_failed_save_keeps_previous_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "Config" / "products.json"
    store = ProductStore(path)
    original = [ProductInfo("Orders", "orders", ProviderType.IN_MEMORY)]
    store.save(original)

    def _fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("logcentral.product_store.os.replace", _fail_replace)
    with pytest.raises(OSError):
        store.save([ProductInfo("Billing", "billing", ProviderType.IN_MEMORY)])
    monkeypatch.undo()

    assert store.load() == original
    assert sorted(item.name for item in path.parent.iterdir()) == ["products.json"]


def test_save_leaves_no_temp_files(tmp_path) -> None:
    path = tmp_path / "products.json"
    store = ProductStore(path)
    store.save([ProductInfo("Orders")])
    store.save([ProductInfo("Orders"), ProductInfo("Billing")])

    assert [item.name for item in tmp_path.iterdir()] == ["products.json"]
    assert len(store.load()) == 2
