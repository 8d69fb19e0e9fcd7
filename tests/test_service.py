import json
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from logcentral.catalog import DuplicateProductError, ProductCatalog, ProductNotFoundError
from logcentral.config import LogCentralConfig
from logcentral.connection import UnsupportedProviderError
from logcentral.models import ProviderType
from logcentral.observability import Observability
from logcentral.product_store import ProductStore
from logcentral.repository_factory import RepositoryFactory
from logcentral.service import DEMO_PRODUCT_NAME, LogCentralService


def _service(tmp_path) -> LogCentralService:
    config = LogCentralConfig(products_path=str(tmp_path / "Config" / "products.json"))
    return LogCentralService.from_config(config)


def _saved_names(tmp_path) -> list[str]:
    path = tmp_path / "Config" / "products.json"
    return [item["DatabaseName"] for item in json.loads(path.read_text(encoding="utf-8"))]


def test_add_product_fills_default_connection_and_persists(tmp_path) -> None:
    service = _service(tmp_path)
    product = service.add_product(database_name="Orders", provider_type="MySQL")

    assert product.connection_string == (
        "server=localhost;port=3306;database=Orders;user=root;password=yourpassword"
    )
    assert _saved_names(tmp_path) == ["Orders"]
    assert _service(tmp_path).get_product("orders") == product


def test_duplicate_names_are_rejected_case_insensitively(tmp_path) -> None:
    service = _service(tmp_path)
    service.add_product(database_name="Orders", provider_type=ProviderType.IN_MEMORY)
    with pytest.raises(DuplicateProductError):
        service.add_product(database_name=" orders ", provider_type=ProviderType.SQLITE)
    assert len(service.list_products()) == 1


def test_add_product_rejects_bad_input(tmp_path) -> None:
    service = _service(tmp_path)
    with pytest.raises(ValueError):
        service.add_product(database_name="  ", provider_type="MongoDB")
    with pytest.raises(UnsupportedProviderError):
        service.add_product(database_name="Orders", provider_type="Oracle")
    with pytest.raises(ValueError):
        service.add_product(
            database_name="Orders",
            provider_type="MySQL",
            connection_string="server=db;port=nope",
        )
    assert service.list_products() == []


def test_update_and_remove_product(tmp_path) -> None:
    service = _service(tmp_path)
    service.add_product(database_name="Orders", provider_type="InMemory")

    updated = service.update_product("ORDERS", provider_type="SQLite", connection_string="orders.db")
    assert updated.provider_type == ProviderType.SQLITE
    assert updated.connection_string == "orders.db"
    assert _service(tmp_path).get_product("Orders").provider_type == ProviderType.SQLITE

    service.remove_product("orders")
    assert _saved_names(tmp_path) == []
    with pytest.raises(ProductNotFoundError):
        service.remove_product("Orders")


def test_latest_log_swallows_store_faults(tmp_path) -> None:
    service = _service(tmp_path)
    service.add_product(
        database_name="Legacy",
        provider_type="SQLite",
        connection_string=f"Data Source={tmp_path / 'missing.sqlite'}",
    )
    assert service.latest_log("Legacy") is None
    with pytest.raises(ProductNotFoundError):
        service.latest_log("Unknown")


def test_dashboard_applies_range_and_hidden_levels(tmp_path) -> None:
    service = _service(tmp_path)
    now = datetime(2025, 6, 10, 12, 0)
    service.seed_demo(now=now)

    dashboard = service.dashboard(
        DEMO_PRODUCT_NAME,
        range_start=datetime(2025, 6, 10),
        hidden_levels=["error", "Unknown"],
    )

    assert dashboard.available
    assert not dashboard.is_error_visible
    assert dashboard.is_info_visible and dashboard.is_warning_visible
    assert dashboard.range_end == datetime.max
    assert dashboard.selected_logs
    assert all(record.timestamp >= datetime(2025, 6, 10) for record in dashboard.selected_logs)


def test_dashboard_for_unreachable_store_is_empty(tmp_path) -> None:
    service = _service(tmp_path)
    service.add_product(
        database_name="Legacy",
        provider_type="SQLite",
        connection_string=f"Data Source={tmp_path / 'missing.sqlite'}",
    )
    dashboard = service.dashboard("Legacy")
    assert not dashboard.available
    assert dashboard.series == []


def test_seed_demo_is_idempotent(tmp_path) -> None:
    service = _service(tmp_path)
    now = datetime(2025, 6, 10, 12, 0)
    first = service.seed_demo(now=now)
    count = len(service.factory.memory_store(first.connection_string).records)
    second = service.seed_demo(now=now)

    assert first is second
    assert count > 0
    assert len(service.factory.memory_store(first.connection_string).records) == count
    assert service.latest_log(DEMO_PRODUCT_NAME).timestamp == now


def test_summary_follows_catalog_changes(tmp_path) -> None:
    service = _service(tmp_path)
    summary = service.summary()
    assert summary.total == 0

    service.seed_demo(now=datetime(2025, 6, 10, 12, 0))
    assert summary.total > 0
    assert service.summary() is summary

    service.remove_product(DEMO_PRODUCT_NAME)
    assert summary.total == 0


def test_observability_snapshot(tmp_path) -> None:
    service = _service(tmp_path)
    service.seed_demo(now=datetime(2025, 6, 10, 12, 0))
    service.add_product(
        database_name="Legacy",
        provider_type="SQLite",
        connection_string=f"Data Source={tmp_path / 'missing.sqlite'}",
    )

    snapshot = Observability(service).snapshot()

    assert snapshot["products"] == 2
    assert snapshot["logs_total"] == service.summary().total
    assert snapshot["logs_total"] > 0
    assert snapshot["products_unavailable"] == 1
    assert snapshot["summary_recomputations"] >= 1
    service.close()


class _SlowCatalog(ProductCatalog):
    def find(self, database_name):
        time.sleep(0.01)
        return super().find(database_name)


class _EmptyMongoCursor:
    def sort(self, key, direction):
        return self

    def limit(self, count):
        return self

    def __iter__(self):
        return iter([])


class _EmptyLogCollection:
    def find(self):
        return _EmptyMongoCursor()


class _FakeMongoClient:
    created: list["_FakeMongoClient"] = []

    def __init__(self, uri, **kwargs):
        self.uri = uri
        self.closed = False
        _FakeMongoClient.created.append(self)

    def __getitem__(self, name):
        return {"Log": _EmptyLogCollection()}

    def close(self):
        self.closed = True


def test_update_product_recomputes_summary_once(tmp_path) -> None:
    service = _service(tmp_path)
    service.add_product(
        database_name="Web",
        provider_type="SQLite",
        connection_string="Data Source=x.sqlite",
    )
    summary = service.summary()
    events = []
    summary.subscribe(events.append)
    before = summary.recompute_count

    service.update_product("Web", provider_type="InMemory", connection_string="webstore")

    assert summary.recompute_count == before + 1
    assert len(events) == 1
    assert summary.failures == {}
    assert service.factory.memory_stores == {}


def test_mongo_client_is_reused_and_closed_with_service(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(_FakeMongoClient, "created", [])
    monkeypatch.setattr("logcentral.mongo_repository.MongoClient", _FakeMongoClient)
    service = _service(tmp_path)
    service.add_product(database_name="Orders", provider_type="MongoDB")

    for _ in range(5):
        assert service.latest_log("Orders") is None
        assert service.dashboard("Orders").available
        service.summary(refresh=True)

    assert len(_FakeMongoClient.created) == 1
    assert not _FakeMongoClient.created[0].closed

    service.close()
    assert _FakeMongoClient.created[0].closed


def test_concurrent_adds_keep_names_unique(tmp_path) -> None:
    config = LogCentralConfig(products_path=str(tmp_path / "products.json"))
    service = LogCentralService(
        config=config,
        store=ProductStore(config.products_path),
        factory=RepositoryFactory(config=config),
        catalog=_SlowCatalog(),
    )

    def _add(_):
        try:
            service.add_product(database_name="Orders", provider_type="InMemory")
            return True
        except DuplicateProductError:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_add, range(8)))

    assert results.count(True) == 1
    assert len(service.list_products()) == 1
    assert len(ProductStore(config.products_path).load()) == 1
