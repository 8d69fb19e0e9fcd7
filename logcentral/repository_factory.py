from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .config import LogCentralConfig
from .connection import (
    ConnectionSpec,
    InMemorySpec,
    MongoSpec,
    MySQLSpec,
    SQLiteSpec,
    UnsupportedProviderError,
    build_connection_spec,
)
from .models import ProductInfo, ProviderType
from .mongo_repository import MongoLogRepository, open_client
from .repository import InMemoryLogRepository, InMemoryLogStore
from .repository_protocol import LogRepository
from .sql_repository import MySQLLogRepository, SQLiteLogRepository

logger = logging.getLogger(__name__)


@dataclass
class RepositoryFactory:
    """Builds a log repository for a provider kind.

    In-memory stores are registered through ``memory_store`` and live for as
    long as the factory does; every repository resolved with a registered key
    sees the same data. Resolving an unregistered key reads an empty store
    without registering it. MongoDB clients are opened once per URI and shared
    until ``close``.
    """

    config: LogCentralConfig = field(default_factory=LogCentralConfig)
    memory_stores: dict[str, InMemoryLogStore] = field(default_factory=dict)
    mongo_clients: dict[str, Any] = field(default_factory=dict)

    def memory_store(self, key: str) -> InMemoryLogStore:
        store = self.memory_stores.get(key)
        if store is None:
            store = InMemoryLogStore(key=key)
            self.memory_stores[key] = store
        return store

    def mongo_client(self, uri: str) -> Any:
        client = self.mongo_clients.get(uri)
        if client is None:
            client = open_client(uri, self.config.mongo_timeout_ms)
            self.mongo_clients[uri] = client
        return client

    def close(self) -> None:
        for uri, client in list(self.mongo_clients.items()):
            try:
                client.close()
            except Exception as exc:
                logger.warning("Failed to close MongoDB client uri=%s: %s", uri, exc)
        self.mongo_clients.clear()

    def resolve(
        self,
        provider: ProviderType | str,
        database_name: str,
        connection_string: str | None = None,
    ) -> LogRepository:
        spec = build_connection_spec(
            provider,
            database_name,
            connection_string,
            config=self.config,
        )
        return self.from_spec(spec)

    def from_spec(self, spec: ConnectionSpec) -> LogRepository:
        if isinstance(spec, InMemorySpec):
            store = self.memory_stores.get(spec.store_key) or InMemoryLogStore(key=spec.store_key)
            return InMemoryLogRepository(store=store)

        if isinstance(spec, MongoSpec):
            return MongoLogRepository(
                spec=spec,
                server_selection_timeout_ms=self.config.mongo_timeout_ms,
                client=self.mongo_client(spec.uri),
            )

        if isinstance(spec, MySQLSpec):
            return MySQLLogRepository(
                spec=spec,
                connect_timeout_seconds=self.config.mysql_connect_timeout_seconds,
            )

        if isinstance(spec, SQLiteSpec):
            return SQLiteLogRepository.from_spec(spec)

        logger.error("No repository for connection spec type=%s", type(spec).__name__)
        raise UnsupportedProviderError(f"Unsupported connection spec: {spec!r}")


def build_repository(product: ProductInfo, factory: RepositoryFactory) -> LogRepository:
    return factory.resolve(
        product.provider_type,
        product.database_name,
        product.connection_string,
    )
