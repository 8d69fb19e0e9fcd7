from .catalog import DuplicateProductError, ProductCatalog, ProductNotFoundError
from .config import LogCentralConfig
from .connection import UnsupportedProviderError, build_connection_spec, default_connection_string
from .dashboard import DashboardAggregator
from .models import ChartSeries, LevelSlice, LogRecord, ProductInfo, ProviderType
from .product_store import ProductStore
from .repository import InMemoryLogRepository, InMemoryLogStore
from .repository_factory import RepositoryFactory, build_repository
from .service import LogCentralService
from .summary import SummaryAggregator

__all__ = [
    "ChartSeries",
    "DashboardAggregator",
    "DuplicateProductError",
    "InMemoryLogRepository",
    "InMemoryLogStore",
    "LevelSlice",
    "LogCentralConfig",
    "LogCentralService",
    "LogRecord",
    "ProductCatalog",
    "ProductInfo",
    "ProductNotFoundError",
    "ProductStore",
    "ProviderType",
    "RepositoryFactory",
    "SummaryAggregator",
    "UnsupportedProviderError",
    "build_connection_spec",
    "build_repository",
    "default_connection_string",
]
