from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .events import CollectionAction, CollectionChange, Observable
from .models import ProductInfo

logger = logging.getLogger(__name__)


class DuplicateProductError(ValueError):
    pass


class ProductNotFoundError(KeyError):
    pass


def product_key(database_name: str | None) -> str:
    return (database_name or "").strip().casefold()


class ProductCatalog(Observable):
    """Ordered, observable list of products.

    Database names are unique case-insensitively. Structural changes are
    announced as CollectionChange events; per-product field changes are
    announced by the products themselves.
    """

    def __init__(self, products: Iterable[ProductInfo] = ()) -> None:
        super().__init__()
        self._items: list[ProductInfo] = []
        for product in products:
            self._check_insertable(product)
            self._items.append(product)

    def __iter__(self) -> Iterator[ProductInfo]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product: object) -> bool:
        return any(item is product for item in self._items)

    def find(self, database_name: str) -> ProductInfo | None:
        key = product_key(database_name)
        for item in self._items:
            if product_key(item.database_name) == key:
                return item
        return None

    def get(self, database_name: str) -> ProductInfo:
        product = self.find(database_name)
        if product is None:
            raise ProductNotFoundError(database_name)
        return product

    def add(self, product: ProductInfo) -> None:
        self._check_insertable(product)
        self._items.append(product)
        self._notify(CollectionChange(action=CollectionAction.ADD, new_items=(product,)))

    def remove(self, product: ProductInfo) -> None:
        for index, item in enumerate(self._items):
            if item is product:
                del self._items[index]
                self._notify(
                    CollectionChange(action=CollectionAction.REMOVE, old_items=(product,))
                )
                return
        raise ProductNotFoundError(product.database_name)

    def replace_all(self, products: Iterable[ProductInfo]) -> None:
        incoming = list(products)
        seen: set[str] = set()
        for product in incoming:
            errors = product.validation_errors()
            if errors:
                raise ValueError("; ".join(errors))
            key = product_key(product.database_name)
            if key in seen:
                raise DuplicateProductError(product.database_name)
            seen.add(key)
        old_items = tuple(self._items)
        self._items = incoming
        self._notify(
            CollectionChange(
                action=CollectionAction.RESET,
                new_items=tuple(incoming),
                old_items=old_items,
            )
        )

    def _check_insertable(self, product: ProductInfo) -> None:
        errors = product.validation_errors()
        if errors:
            raise ValueError("; ".join(errors))
        if product in self:
            raise DuplicateProductError(product.database_name)
        if self.find(product.database_name) is not None:
            raise DuplicateProductError(product.database_name)


def dedupe_products(products: Iterable[ProductInfo]) -> list[ProductInfo]:
    unique: list[ProductInfo] = []
    seen: set[str] = set()
    for product in products:
        key = product_key(product.database_name)
        if key in seen:
            logger.warning(
                "Dropping duplicate product database_name=%s; keeping the first entry.",
                product.database_name,
            )
            continue
        seen.add(key)
        unique.append(product)
    return unique
