"""상품 서비스 파사드"""
from typing import Any, Dict, List, Optional

from market_import.core.entities.import_execution import ImportExecution
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct
from market_import.core.exceptions import ConfigurationError, ProductNotFoundError
from market_import.core.ports.cache_port import CachePort
from market_import.core.ports.repo_port import RepositoryPort
from market_import.core.usecases.import_products import ImportProductsUseCase, ImportReport
from market_import.core.usecases.sync_products import SyncProductsUseCase, SyncReport
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


def product_cache_key(product_id: str) -> str:
    return f"product:{product_id}"


class ProductService:
    """가져오기/재동기화 실행, 상품 조회(캐시), 마크업 변경"""

    def __init__(
        self,
        import_usecase: ImportProductsUseCase,
        repository: RepositoryPort,
        cache: Optional[CachePort] = None,
        cache_ttl_seconds: float = 3600,
        sync_usecase: Optional[SyncProductsUseCase] = None
    ):
        self.import_usecase = import_usecase
        self.sync_usecase = sync_usecase
        self.repository = repository
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds

    async def import_products(
        self,
        connection_id: str,
        search_query: Optional[str] = None,
        product_ids: Optional[List[str]] = None
    ) -> ImportReport:
        report = await self.import_usecase.execute(
            connection_id=connection_id,
            search_query=search_query,
            product_ids=product_ids
        )
        # 재가져오기로 바뀐 상품은 캐시에서 제거
        for item in report.products:
            if item.imported and item.product.id:
                await self._cache_delete(item.product.id)
        return report

    async def sync_products(self, connection_id: str, sync_type: Optional[str] = None) -> SyncReport:
        """자동 동기화 상품 재동기화, 변경된 상품은 캐시 제거"""
        if self.sync_usecase is None:
            raise ConfigurationError("상품 동기화가 구성되지 않았습니다")
        report = await self.sync_usecase.execute(connection_id, sync_type)
        for product in report.updated:
            if product.id:
                await self._cache_delete(product.id)
        return report

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        """상품 조회 (캐시 우선, 실패/미스 시 DB)"""
        cached = await self._cache_get(product_id)
        if cached is not None:
            return cached

        product = await self._load(product_id)
        data = product.to_dict()
        await self._cache_set(product_id, data)
        return data

    async def update_markup(self, product_id: str, markup_type: str, markup_value: float) -> NormalizedProduct:
        """마크업 변경 후 판매가 재계산"""
        product = await self._load(product_id)
        product.reprice(MarkupPolicy.of(markup_type, markup_value))
        saved = await self.repository.upsert_product(product)
        await self._cache_delete(product_id)
        logger.info(
            f"마크업 변경: product={product_id} type={markup_type} value={markup_value} price={saved.price}"
        )
        return saved

    async def set_auto_sync(self, product_id: str, enabled: bool) -> NormalizedProduct:
        product = await self._load(product_id)
        product.auto_sync_enabled = enabled
        saved = await self.repository.upsert_product(product)
        await self._cache_delete(product_id)
        return saved

    async def list_products(self, connection_id: str, limit: int = 50, offset: int = 0) -> List[NormalizedProduct]:
        return await self.repository.list_products(connection_id, limit=limit, offset=offset)

    async def list_executions(self, connection_id: str, limit: int = 50) -> List[ImportExecution]:
        return await self.repository.list_executions(connection_id, limit=limit)

    async def _load(self, product_id: str) -> NormalizedProduct:
        product = await self.repository.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(f"상품을 찾을 수 없습니다: {product_id}", {"product_id": product_id})
        return product

    # 캐시는 보조 수단이므로 오류는 로그만 남김
    async def _cache_get(self, product_id: str) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(product_cache_key(product_id))
        except Exception as e:
            logger.warning(f"캐시 조회 실패, DB 조회로 대체 {product_id}: {e}")
            return None

    async def _cache_set(self, product_id: str, data: Dict[str, Any]) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(product_cache_key(product_id), data, self.cache_ttl_seconds)
        except Exception as e:
            logger.warning(f"캐시 저장 실패 {product_id}: {e}")

    async def _cache_delete(self, product_id: str) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.delete(product_cache_key(product_id))
        except Exception as e:
            logger.warning(f"캐시 삭제 실패 {product_id}: {e}")
