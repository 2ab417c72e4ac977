"""상품 가져오기 관련 DTO 스키마"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from market_import.core.entities.product import MarkupType


class ProductImportRequest(BaseModel):
    """POST /product-import 요청"""
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., min_length=1, alias="connectionId")
    search_query: Optional[str] = Field(None, alias="searchQuery")
    import_selected: bool = Field(False, alias="importSelected")
    product_ids: List[str] = Field(default_factory=list, alias="productIds")

    def selected_ids(self) -> Optional[List[str]]:
        """importSelected 일 때만 productIds 사용"""
        return self.product_ids if self.import_selected and self.product_ids else None


class ExecutionResponse(BaseModel):
    """가져오기 실행 이력"""
    id: str
    api_connection_id: str
    execution_type: str
    status: str
    products_found: int
    products_processed: int
    products_imported: int
    products_updated: int = 0
    summary: Dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None


class ProductResponse(BaseModel):
    """정규화 상품"""
    id: Optional[str] = None
    api_connection_id: str
    marketplace_product_id: str
    marketplace_name: str
    title: str
    description: Optional[str] = None
    price: float
    original_price: float
    currency: str
    available_quantity: int = 0
    sold_quantity: int = 0
    condition: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)
    shipping_info: Dict[str, Any] = Field(default_factory=dict)
    seller_info: Dict[str, Any] = Field(default_factory=dict)
    marketplace_url: Optional[str] = None
    markup_type: str
    markup_value: float
    last_sync_at: Optional[str] = None
    sync_status: str
    auto_sync_enabled: bool = True
    imported: Optional[bool] = None


class ProductImportResponse(BaseModel):
    success: bool = True
    products: List[ProductResponse]
    execution: ExecutionResponse
    imported_count: int


class MarkupUpdateRequest(BaseModel):
    """PATCH /products/{id}/markup 요청"""
    model_config = ConfigDict(populate_by_name=True)

    markup_type: MarkupType = Field(MarkupType.PERCENTAGE, alias="markupType")
    markup_value: float = Field(..., ge=0, alias="markupValue")


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    total: int
    limit: int
    offset: int


class SyncProductsRequest(BaseModel):
    """POST /sync-products 요청"""
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., min_length=1, alias="connectionId")
    sync_type: str = Field("all", alias="syncType")


class SyncProductsResponse(BaseModel):
    success: bool = True
    message: str
    type: str
    execution: ExecutionResponse
    updated_count: int


class AutoSyncUpdateRequest(BaseModel):
    """PATCH /products/{id}/auto-sync 요청"""
    enabled: bool
