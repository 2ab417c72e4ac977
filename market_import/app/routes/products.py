"""상품 가져오기/동기화/조회 라우트"""
from fastapi import APIRouter, Depends, Query

from market_import.app.di import get_product_service
from market_import.presentation.schemas.products import (
    AutoSyncUpdateRequest, ExecutionResponse, MarkupUpdateRequest, ProductImportRequest,
    ProductImportResponse, ProductListResponse, ProductResponse, SyncProductsRequest, SyncProductsResponse
)
from market_import.services.product_service import ProductService
from market_import.shared.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/product-import", response_model=ProductImportResponse)
async def product_import(
    body: ProductImportRequest,
    service: ProductService = Depends(get_product_service)
):
    """검색어 또는 선택 상품 가져오기"""
    report = await service.import_products(
        body.connection_id,
        search_query=body.search_query,
        product_ids=body.selected_ids()
    )
    return ProductImportResponse(
        products=[ProductResponse(**item.to_dict()) for item in report.products],
        execution=ExecutionResponse(**report.execution.to_dict()),
        imported_count=report.imported_count
    )


@router.post("/sync-products", response_model=SyncProductsResponse)
async def sync_products(
    body: SyncProductsRequest,
    service: ProductService = Depends(get_product_service)
):
    """자동 동기화 상품 재동기화 (all | prices | inventory | details)"""
    report = await service.sync_products(body.connection_id, body.sync_type)
    return SyncProductsResponse(
        message=f"{report.sync_type.value} sync {report.execution.status.value}",
        type=report.sync_type.value,
        execution=ExecutionResponse(**report.execution.to_dict()),
        updated_count=report.updated_count
    )


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    service: ProductService = Depends(get_product_service)
):
    """상품 상세 조회"""
    return ProductResponse(**await service.get_product(product_id))


@router.patch("/products/{product_id}/markup", response_model=ProductResponse)
async def update_markup(
    product_id: str,
    body: MarkupUpdateRequest,
    service: ProductService = Depends(get_product_service)
):
    """마크업 변경 (판매가 재계산)"""
    product = await service.update_markup(product_id, body.markup_type.value, body.markup_value)
    return ProductResponse(**product.to_dict())


@router.patch("/products/{product_id}/auto-sync", response_model=ProductResponse)
async def update_auto_sync(
    product_id: str,
    body: AutoSyncUpdateRequest,
    service: ProductService = Depends(get_product_service)
):
    """자동 동기화 대상 여부 변경"""
    product = await service.set_auto_sync(product_id, body.enabled)
    return ProductResponse(**product.to_dict())


@router.get("/connections/{connection_id}/products", response_model=ProductListResponse)
async def list_products(
    connection_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: ProductService = Depends(get_product_service)
):
    """연결별 상품 목록"""
    products = await service.list_products(connection_id, limit=limit, offset=offset)
    return ProductListResponse(
        products=[ProductResponse(**product.to_dict()) for product in products],
        total=len(products),
        limit=limit,
        offset=offset
    )


@router.get("/connections/{connection_id}/executions")
async def list_executions(
    connection_id: str,
    limit: int = Query(50, ge=1, le=200),
    service: ProductService = Depends(get_product_service)
):
    """연결별 가져오기 실행 이력"""
    executions = await service.list_executions(connection_id, limit=limit)
    return {"executions": [ExecutionResponse(**execution.to_dict()) for execution in executions]}
