from __future__ import annotations

import logging
from typing import Any

from .catalog import ProductCatalog
from .events import CollectionChange, Observable, PropertyChange
from .models import LevelSlice, ProductInfo, normalize_level
from .repository_factory import RepositoryFactory, build_repository

logger = logging.getLogger(__name__)


class SummaryAggregator(Observable):
    """Merged level histogram across every product in a catalog.

    The histogram is rebuilt from scratch whenever the catalog gains or loses
    a product or any product field changes. Observers get exactly one
    ``series`` PropertyChange per rebuild.
    """

    def __init__(self, catalog: ProductCatalog, factory: RepositoryFactory) -> None:
        super().__init__()
        self.catalog = catalog
        self.factory = factory
        self.slices: list[LevelSlice] = []
        self.failures: dict[str, str] = {}
        self.recompute_count = 0
        self._watched: list[ProductInfo] = []

        self.catalog.subscribe(self._on_catalog_changed)
        for product in self.catalog:
            self._watch(product)
        self.recompute()

    @property
    def counts(self) -> dict[str, int]:
        return {item.level: item.count for item in self.slices}

    @property
    def total(self) -> int:
        return sum(item.count for item in self.slices)

    def count(self, level: str) -> int:
        key = normalize_level(level)
        for item in self.slices:
            if normalize_level(item.level) == key:
                return item.count
        return 0

    def share(self, level: str) -> float:
        total = self.total
        if total == 0:
            return 0.0
        return self.count(level) / total

    def recompute(self) -> None:
        totals: dict[str, int] = {}
        display_names: dict[str, str] = {}
        failures: dict[str, str] = {}

        for product in self.catalog:
            try:
                repository = build_repository(product, self.factory)
                records = repository.all()
            except Exception as exc:
                logger.warning(
                    "Skipping product database_name=%s in summary: %s",
                    product.database_name,
                    exc,
                )
                failures[product.database_name] = str(exc)
                continue

            for record in records:
                key = normalize_level(record.level)
                display_names.setdefault(key, record.level)
                totals[key] = totals.get(key, 0) + 1

        self.slices = [
            LevelSlice(level=display_names[key], count=count) for key, count in totals.items()
        ]
        self.failures = failures
        self.recompute_count += 1
        self._notify_property("series")

    def close(self) -> None:
        self.catalog.unsubscribe(self._on_catalog_changed)
        for product in list(self._watched):
            self._unwatch(product)

    def _watch(self, product: ProductInfo) -> None:
        if any(item is product for item in self._watched):
            return
        product.subscribe(self._on_product_changed)
        self._watched.append(product)

    def _unwatch(self, product: ProductInfo) -> None:
        product.unsubscribe(self._on_product_changed)
        self._watched = [item for item in self._watched if item is not product]

    def _on_catalog_changed(self, event: Any) -> None:
        if not isinstance(event, CollectionChange):
            return
        for product in event.old_items:
            self._unwatch(product)
        for product in event.new_items:
            self._watch(product)
        self.recompute()

    def _on_product_changed(self, event: Any) -> None:
        if isinstance(event, PropertyChange):
            self.recompute()
