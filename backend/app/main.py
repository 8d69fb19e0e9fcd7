from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware

from logcentral import (
    DuplicateProductError,
    LogCentralConfig,
    LogCentralService,
    ProductNotFoundError,
    ProviderType,
    UnsupportedProviderError,
)
from logcentral.dashboard import DashboardAggregator
from logcentral.models import LogRecord, ProductInfo
from logcentral.observability import configure_logging

from .schemas import (
    ChartPointOut,
    ChartSeriesOut,
    DashboardResponse,
    HealthResponse,
    LatestLogResponse,
    LevelSliceOut,
    LogRecordOut,
    ProductCreateRequest,
    ProductListResponse,
    ProductOut,
    ProductUpdateRequest,
    ProviderListResponse,
    ProviderOut,
    SummaryResponse,
)


def _build_service() -> LogCentralService:
    config = LogCentralConfig.from_env()
    configure_logging(config.log_level)
    service = LogCentralService.from_config(config)
    if config.seed_demo_products:
        service.seed_demo()
    return service


def _product_out(value: ProductInfo) -> ProductOut:
    return ProductOut(
        database_name=value.database_name,
        connection_string=value.connection_string,
        provider_type=value.provider_type.value,  # type: ignore[arg-type]
    )


def _log_out(value: LogRecord | None) -> LogRecordOut | None:
    if value is None:
        return None
    return LogRecordOut(
        id=value.id,
        timestamp=value.timestamp,
        level=value.level,
        message=value.message,
        stack_trace=value.stack_trace,
    )


def _dashboard_out(database_name: str, value: DashboardAggregator) -> DashboardResponse:
    return DashboardResponse(
        database_name=database_name,
        available=value.available,
        error=str(value.last_result.error) if value.last_result.error else None,
        selected_log=_log_out(value.selected_log),
        series=[
            ChartSeriesOut(
                name=series.name,
                color=series.color,
                is_visible=series.is_visible,
                points=[
                    ChartPointOut(date=point.date, x=point.x, count=point.count)
                    for point in series.points
                ],
            )
            for series in value.series
        ],
        visibility={series.name: series.is_visible for series in value.series},
        x_axis_labels=value.x_axis_labels(),
        range_start=value.range_start,
        range_end=value.range_end,
        selected_logs=[_log_out(item) for item in value.selected_logs],
    )


def _not_found(exc: ProductNotFoundError) -> HTTPException:
    name = exc.args[0] if exc.args else ""
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {name} not found.")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.log_central_service = _build_service()
    try:
        yield
    finally:
        service = getattr(app.state, "log_central_service", None)
        if service is not None:
            service.close()
            delattr(app.state, "log_central_service")


def get_service(request: Request) -> LogCentralService:
    service = getattr(request.app.state, "log_central_service", None)
    if not service:
        raise HTTPException(status_code=503, detail="Service is not initialized.")
    return service


ServiceDep = Annotated[LogCentralService, Depends(get_service)]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health() -> HealthResponse:
    return HealthResponse(status="ok", service="log-central-api", version="1.0.0")


@router.get("/api/v1/providers", response_model=ProviderListResponse, tags=["products"])
def list_providers(
    service: ServiceDep,
    database_name: str = Query(default="NewProductDb", min_length=1, max_length=200),
) -> ProviderListResponse:
    return ProviderListResponse(
        items=[
            ProviderOut(
                provider_type=provider.value,  # type: ignore[arg-type]
                default_connection_string=service.default_connection_string(provider, database_name),
            )
            for provider in ProviderType
        ]
    )


@router.get("/api/v1/products", response_model=ProductListResponse, tags=["products"])
def list_products(service: ServiceDep) -> ProductListResponse:
    return ProductListResponse(items=[_product_out(item) for item in service.list_products()])


@router.post(
    "/api/v1/products",
    response_model=ProductOut,
    tags=["products"],
    status_code=status.HTTP_201_CREATED,
)
def create_product(payload: ProductCreateRequest, service: ServiceDep) -> ProductOut:
    try:
        product = service.add_product(
            database_name=payload.database_name,
            provider_type=payload.provider_type,
            connection_string=payload.connection_string,
        )
    except DuplicateProductError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Product {exc} already exists.",
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _product_out(product)


@router.put("/api/v1/products/{database_name}", response_model=ProductOut, tags=["products"])
def update_product(
    database_name: str,
    payload: ProductUpdateRequest,
    service: ServiceDep,
) -> ProductOut:
    try:
        product = service.update_product(
            database_name,
            connection_string=payload.connection_string,
            provider_type=payload.provider_type,
        )
    except ProductNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _product_out(product)


@router.delete(
    "/api/v1/products/{database_name}",
    tags=["products"],
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_product(database_name: str, service: ServiceDep) -> None:
    try:
        service.remove_product(database_name)
    except ProductNotFoundError as exc:
        raise _not_found(exc) from exc


@router.get(
    "/api/v1/products/{database_name}/latest",
    response_model=LatestLogResponse,
    tags=["logs"],
)
def latest_log(database_name: str, service: ServiceDep) -> LatestLogResponse:
    try:
        record = service.latest_log(database_name)
    except ProductNotFoundError as exc:
        raise _not_found(exc) from exc
    return LatestLogResponse(database_name=database_name, log=_log_out(record))


@router.get(
    "/api/v1/products/{database_name}/dashboard",
    response_model=DashboardResponse,
    tags=["logs"],
)
def product_dashboard(
    database_name: str,
    service: ServiceDep,
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    hidden: list[str] = Query(default=[]),
) -> DashboardResponse:
    try:
        dashboard = service.dashboard(
            database_name,
            range_start=start,
            range_end=end,
            hidden_levels=hidden,
        )
    except ProductNotFoundError as exc:
        raise _not_found(exc) from exc
    except UnsupportedProviderError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _dashboard_out(database_name, dashboard)


@router.get("/api/v1/summary", response_model=SummaryResponse, tags=["summary"])
def summary(service: ServiceDep) -> SummaryResponse:
    slices, failures = service.summary_snapshot(refresh=True)
    total = sum(item.count for item in slices)
    return SummaryResponse(
        total=total,
        slices=[
            LevelSliceOut(level=item.level, count=item.count, share=item.count / total if total else 0.0)
            for item in slices
        ],
        failures=failures,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Log Central API",
        version="1.0.0",
        description=(
            "FastAPI backend for registering log databases, browsing their latest "
            "entries and charting log levels per product and across products."
        ),
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=LogCentralConfig.from_env().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
