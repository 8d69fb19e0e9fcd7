from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .catalog import ProductCatalog
from .config import LogCentralConfig
from .connection import (
    UnsupportedProviderError,
    build_connection_spec,
    default_connection_string,
    parse_provider,
)
from .dashboard import DashboardAggregator
from .models import LevelSlice, LogRecord, ProductInfo, ProviderType
from .product_store import ProductStore
from .repository import UnavailableRepository
from .repository_factory import RepositoryFactory, build_repository
from .summary import SummaryAggregator

logger = logging.getLogger(__name__)

DEMO_PRODUCT_NAME = "DemoProduct"


@dataclass
class LogCentralService:
    """Product registry plus the dashboard and summary entry points.

    Every public operation holds ``_lock``: the catalog, the summary and the
    factory's store and client registries are shared across request threads.
    """

    config: LogCentralConfig
    store: ProductStore
    factory: RepositoryFactory
    catalog: ProductCatalog = field(default_factory=ProductCatalog)
    _summary: Optional[SummaryAggregator] = field(default=None, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    @classmethod
    def from_config(cls, config: LogCentralConfig) -> "LogCentralService":
        store = ProductStore(config.products_path)
        service = cls(
            config=config,
            store=store,
            factory=RepositoryFactory(config=config),
            catalog=ProductCatalog(store.load()),
        )
        logger.info(
            "Loaded %s product(s) from %s",
            len(service.catalog),
            store.path,
        )
        return service

    def list_products(self) -> list[ProductInfo]:
        with self._lock:
            return list(self.catalog)

    def get_product(self, database_name: str) -> ProductInfo:
        with self._lock:
            return self.catalog.get(database_name)

    def default_connection_string(self, provider_type: ProviderType | str, database_name: str) -> str:
        return default_connection_string(provider_type, database_name, self.config)

    def add_product(
        self,
        *,
        database_name: str,
        provider_type: ProviderType | str,
        connection_string: str | None = None,
    ) -> ProductInfo:
        provider = parse_provider(provider_type)
        name = (database_name or "").strip()
        connection = (connection_string or "").strip() or self.default_connection_string(
            provider, name
        )
        # Fails early on an unparsable connection string.
        build_connection_spec(provider, name, connection, config=self.config)
        product = ProductInfo(
            database_name=name,
            connection_string=connection,
            provider_type=provider,
        )
        with self._lock:
            self.catalog.add(product)
            self._persist()
        logger.info("Added product database_name=%s provider=%s", name, provider.value)
        return product

    def update_product(
        self,
        database_name: str,
        *,
        connection_string: str | None = None,
        provider_type: ProviderType | str | None = None,
    ) -> ProductInfo:
        with self._lock:
            product = self.catalog.get(database_name)
            provider = (
                parse_provider(provider_type) if provider_type is not None else product.provider_type
            )
            connection = product.connection_string if connection_string is None else connection_string
            build_connection_spec(provider, product.database_name, connection, config=self.config)
            product.update(provider_type=provider, connection_string=connection)
            self._persist()
        logger.info("Updated product database_name=%s", product.database_name)
        return product

    def remove_product(self, database_name: str) -> ProductInfo:
        with self._lock:
            product = self.catalog.get(database_name)
            self.catalog.remove(product)
            self._persist()
        logger.info("Removed product database_name=%s", product.database_name)
        return product

    def latest_log(self, database_name: str) -> LogRecord | None:
        with self._lock:
            product = self.catalog.get(database_name)
            try:
                return build_repository(product, self.factory).latest()
            except Exception as exc:
                logger.warning(
                    "Latest log unavailable for database_name=%s: %s",
                    product.database_name,
                    exc,
                )
                return None

    def dashboard(
        self,
        database_name: str,
        *,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        hidden_levels: Iterable[str] = (),
    ) -> DashboardAggregator:
        with self._lock:
            product = self.catalog.get(database_name)
            try:
                repository = build_repository(product, self.factory)
            except UnsupportedProviderError:
                raise
            except Exception as exc:
                logger.warning(
                    "Could not open store for database_name=%s: %s",
                    product.database_name,
                    exc,
                )
                repository = UnavailableRepository(error=exc)
            dashboard = DashboardAggregator(repository)
        if range_start is not None or range_end is not None:
            dashboard.set_range(
                range_start if range_start is not None else datetime.min,
                range_end if range_end is not None else datetime.max,
            )
        for level in hidden_levels:
            if dashboard.is_visible(level):
                dashboard.toggle(level)
        return dashboard

    def summary(self, *, refresh: bool = False) -> SummaryAggregator:
        with self._lock:
            if self._summary is None:
                self._summary = SummaryAggregator(self.catalog, self.factory)
            elif refresh:
                # Store contents can change without any product event.
                self._summary.recompute()
            return self._summary

    def summary_snapshot(self, *, refresh: bool = False) -> tuple[list[LevelSlice], dict[str, str]]:
        """Slices and failures read together, so a concurrent recompute cannot split them."""
        with self._lock:
            summary = self.summary(refresh=refresh)
            return list(summary.slices), dict(summary.failures)

    def close(self) -> None:
        with self._lock:
            if self._summary is not None:
                self._summary.close()
                self._summary = None
            self.factory.close()

    def seed_demo(self, *, now: datetime | None = None, days: int = 7) -> ProductInfo:
        """Register an in-memory product filled with a week of sample logs."""
        with self._lock:
            existing = self.catalog.find(DEMO_PRODUCT_NAME)
            product = existing or self.add_product(
                database_name=DEMO_PRODUCT_NAME,
                provider_type=ProviderType.IN_MEMORY,
            )
            store = self.factory.memory_store(product.connection_string or product.database_name)
            if store.records:
                return product

            anchor = (now or datetime.now()).replace(minute=0, second=0, microsecond=0)
            for day in range(days):
                base = anchor - timedelta(days=day)
                for hour in range(day % 4 + 3):
                    store.add(
                        timestamp=base - timedelta(hours=hour),
                        level="Info",
                        message=f"Heartbeat {day}-{hour}",
                    )
                for hour in range(day % 3):
                    store.add(
                        timestamp=base - timedelta(hours=hour, minutes=30),
                        level="Warning",
                        message=f"Slow response {day}-{hour}",
                    )
                if day % 2 == 0:
                    store.add(
                        timestamp=base - timedelta(hours=1, minutes=15),
                        level="Error",
                        message=f"Unhandled failure {day}",
                        stack_trace="Traceback (most recent call last): ...",
                    )
            if self._summary is not None:
                self._summary.recompute()
        logger.info("Seeded %s demo log(s) into %s", len(store.records), product.database_name)
        return product

    def _persist(self) -> None:
        self.store.save(self.catalog)
