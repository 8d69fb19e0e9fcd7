from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


def _env_csv(name: str, default: list[str] | None = None) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class LogCentralConfig:
    products_path: str = field(
        default_factory=lambda: os.getenv("LOGCENTRAL_PRODUCTS_PATH", os.path.join("Config", "products.json"))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOGCENTRAL_LOG_LEVEL", "INFO"))
    mongo_host: str = "localhost"
    mongo_port: int = 27017
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_user: str = "root"
    mysql_password: str = "yourpassword"
    sqlite_suffix: str = ".sqlite"
    mongo_timeout_ms: int = 5000
    mysql_connect_timeout_seconds: int = 10
    seed_demo_products: bool = False
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:4200", "http://127.0.0.1:4200"]
    )

    @classmethod
    def from_env(cls) -> "LogCentralConfig":
        cfg = cls()
        cfg.products_path = _env_str("LOGCENTRAL_PRODUCTS_PATH", cfg.products_path)
        cfg.log_level = _env_str("LOGCENTRAL_LOG_LEVEL", cfg.log_level).upper()
        cfg.mongo_host = _env_str("LOGCENTRAL_MONGO_HOST", cfg.mongo_host)
        cfg.mongo_port = _env_int("LOGCENTRAL_MONGO_PORT", cfg.mongo_port)
        cfg.mysql_host = _env_str("LOGCENTRAL_MYSQL_HOST", cfg.mysql_host)
        cfg.mysql_port = _env_int("LOGCENTRAL_MYSQL_PORT", cfg.mysql_port)
        cfg.mysql_user = _env_str("LOGCENTRAL_MYSQL_USER", cfg.mysql_user)
        cfg.mysql_password = _env_str("LOGCENTRAL_MYSQL_PASSWORD", cfg.mysql_password)
        cfg.sqlite_suffix = _env_str("LOGCENTRAL_SQLITE_SUFFIX", cfg.sqlite_suffix)
        cfg.mongo_timeout_ms = _env_int(
            "LOGCENTRAL_MONGO_TIMEOUT_MS",
            cfg.mongo_timeout_ms,
        )
        cfg.mysql_connect_timeout_seconds = _env_int(
            "LOGCENTRAL_MYSQL_CONNECT_TIMEOUT_SECONDS",
            cfg.mysql_connect_timeout_seconds,
        )
        cfg.seed_demo_products = _env_bool(
            "LOGCENTRAL_SEED_DEMO_PRODUCTS",
            cfg.seed_demo_products,
        )
        cfg.cors_origins = _env_csv(
            "LOGCENTRAL_API_CORS_ORIGINS",
            cfg.cors_origins,
        ) or ["http://localhost:4200", "http://127.0.0.1:4200"]
        return cfg
