from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .catalog import dedupe_products
from .connection import UnsupportedProviderError, parse_provider
from .models import ProductInfo, ProviderType

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTS_PATH = Path("Config") / "products.json"


class ProductRecordPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    database_name: str = Field(alias="DatabaseName", min_length=1)
    connection_string: str | None = Field(default="", alias="ConnectionString")
    provider_type: ProviderType = Field(default=ProviderType.MONGODB, alias="ProviderType")

    @field_validator("provider_type", mode="before")
    @classmethod
    def _coerce_provider(cls, value):
        # Older files store the enum ordinal instead of its name.
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(ProviderType)
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"Unknown provider ordinal: {value}")
        try:
            return parse_provider(value)
        except UnsupportedProviderError as exc:
            raise ValueError(str(exc)) from exc

    def to_product(self) -> ProductInfo:
        return ProductInfo(
            database_name=self.database_name,
            connection_string=self.connection_string or "",
            provider_type=self.provider_type,
        )

    @classmethod
    def from_product(cls, product: ProductInfo) -> "ProductRecordPayload":
        return cls(
            database_name=product.database_name,
            connection_string=product.connection_string,
            provider_type=product.provider_type,
        )


_PRODUCT_LIST = TypeAdapter(list[ProductRecordPayload])


@dataclass
class ProductStore:
    path: Path = DEFAULT_PRODUCTS_PATH

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def load(self) -> list[ProductInfo]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            payloads = _PRODUCT_LIST.validate_json(raw)
        except (OSError, ValidationError, ValueError) as exc:
            logger.warning("Ignoring unreadable product list path=%s: %s", self.path, exc)
            return []
        return dedupe_products(payload.to_product() for payload in payloads)

    def save(self, products: Iterable[ProductInfo]) -> None:
        payload = [
            ProductRecordPayload.from_product(product).model_dump(by_alias=True, mode="json")
            for product in products
        ]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".products-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(json.dumps(payload, indent=2))
            os.replace(tmp, self.path)
        except Exception:
            os.unlink(tmp)
            raise
        logger.info("Saved %s product(s) to %s", len(payload), self.path)
