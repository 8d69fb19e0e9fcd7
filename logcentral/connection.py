from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .config import LogCentralConfig
from .models import ProviderType


class UnsupportedProviderError(ValueError):
    pass


@dataclass(frozen=True)
class InMemorySpec:
    database_name: str
    store_key: str


@dataclass(frozen=True)
class MongoSpec:
    database_name: str
    uri: str


@dataclass(frozen=True)
class MySQLSpec:
    database_name: str
    host: str
    port: int
    database: str
    user: str
    password: str


@dataclass(frozen=True)
class SQLiteSpec:
    database_name: str
    path: str


ConnectionSpec = Union[InMemorySpec, MongoSpec, MySQLSpec, SQLiteSpec]

_MYSQL_KEYS = {
    "server": "host",
    "host": "host",
    "data source": "host",
    "port": "port",
    "database": "database",
    "initial catalog": "database",
    "user": "user",
    "uid": "user",
    "user id": "user",
    "username": "user",
    "password": "password",
    "pwd": "password",
}

_SQLITE_KEYS = ("data source", "datasource", "filename")


def parse_provider(value: ProviderType | str) -> ProviderType:
    if isinstance(value, ProviderType):
        return value
    if isinstance(value, str):
        raw = value.strip()
        for provider in ProviderType:
            if provider.value.lower() == raw.lower() or provider.name.lower() == raw.lower():
                return provider
    raise UnsupportedProviderError(f"Unsupported provider type: {value!r}")


def parse_connection_string(connection_string: str) -> dict[str, str]:
    """Split a ``key=value;key=value`` string into a lowercase-keyed dict."""
    pairs: dict[str, str] = {}
    for part in connection_string.split(";"):
        if "=" not in part:
            continue
        key, _, value = part.partition("=")
        key = key.strip().lower()
        if key:
            pairs[key] = value.strip()
    return pairs


def default_connection_string(
    provider: ProviderType | str,
    database_name: str,
    config: LogCentralConfig | None = None,
) -> str:
    provider = parse_provider(provider)
    cfg = config or LogCentralConfig()
    if provider == ProviderType.MONGODB:
        return f"mongodb://{cfg.mongo_host}:{cfg.mongo_port}/{database_name}"
    if provider == ProviderType.MYSQL:
        return (
            f"server={cfg.mysql_host};port={cfg.mysql_port};database={database_name};"
            f"user={cfg.mysql_user};password={cfg.mysql_password}"
        )
    if provider == ProviderType.SQLITE:
        return f"Data Source={database_name}{cfg.sqlite_suffix}"
    if provider == ProviderType.IN_MEMORY:
        return database_name
    raise UnsupportedProviderError(f"Unsupported provider type: {provider!r}")


def _mysql_spec(database_name: str, connection_string: str, cfg: LogCentralConfig) -> MySQLSpec:
    raw = parse_connection_string(connection_string)
    values: dict[str, str] = {}
    for key, value in raw.items():
        target = _MYSQL_KEYS.get(key)
        if target and target not in values:
            values[target] = value
    port_raw = values.get("port", "")
    try:
        port = int(port_raw) if port_raw else cfg.mysql_port
    except ValueError as exc:
        raise ValueError(f"Invalid MySQL port in connection string: {port_raw!r}") from exc
    return MySQLSpec(
        database_name=database_name,
        host=values.get("host") or cfg.mysql_host,
        port=port,
        database=values.get("database") or database_name,
        user=values.get("user") or cfg.mysql_user,
        password=values.get("password", ""),
    )


def _sqlite_spec(database_name: str, connection_string: str) -> SQLiteSpec:
    if "=" not in connection_string:
        return SQLiteSpec(database_name=database_name, path=connection_string.strip())
    raw = parse_connection_string(connection_string)
    for key in _SQLITE_KEYS:
        if raw.get(key):
            return SQLiteSpec(database_name=database_name, path=raw[key])
    raise ValueError(f"SQLite connection string has no data source: {connection_string!r}")


def build_connection_spec(
    provider: ProviderType | str,
    database_name: str,
    connection_string: str | None = None,
    config: LogCentralConfig | None = None,
) -> ConnectionSpec:
    provider = parse_provider(provider)
    if not (database_name or "").strip():
        raise ValueError("database_name is required.")
    cfg = config or LogCentralConfig()
    conn = (connection_string or "").strip() or default_connection_string(
        provider, database_name, cfg
    )

    if provider == ProviderType.IN_MEMORY:
        return InMemorySpec(database_name=database_name, store_key=conn)
    if provider == ProviderType.MONGODB:
        return MongoSpec(database_name=database_name, uri=conn)
    if provider == ProviderType.MYSQL:
        return _mysql_spec(database_name, conn, cfg)
    if provider == ProviderType.SQLITE:
        return _sqlite_spec(database_name, conn)
    raise UnsupportedProviderError(f"Unsupported provider type: {provider!r}")
